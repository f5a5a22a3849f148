"""Enrollment state machine.

Drives a payment through ``pending -> completed`` or ``pending -> rejected``
and, on completion, grants the course entitlement and creates the student's
progress record.

Concurrency control lives in the payment store: the pending and completed
slots are claimed with lightweight transactions and every status change is
a compare-and-set on the stored status. The grant step is guarded by the
payment's ``enrollment_completed`` flag and by the entitlement itself, so
re-running it after a partial failure never grants twice.
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from coursegate.auth.principal import PrincipalContext
from coursegate.core.errors import (
    AuthorizationError,
    ConflictError,
    EngineError,
    InvalidStateError,
    NotFoundError,
)
from coursegate.core.logging import get_logger
from coursegate.courses.models import Course
from coursegate.courses.store import CourseStore
from coursegate.progress.ledger import ProgressLedger

from .gateway import PaymentGateway
from .models import (
    PaymentMethod,
    PaymentRecord,
    PaymentSlot,
    PaymentStatus,
    generate_payment_reference_id,
)
from .store import PaymentStore


logger = get_logger(__name__)


class EnrollmentService:
    """Payment submission, admin verification and free enrollment."""

    def __init__(
        self,
        payments: PaymentStore,
        courses: CourseStore,
        progress: ProgressLedger,
        gateway: PaymentGateway,
        default_currency: str = "USD",
        manual_currency: str = "PKR",
    ):
        self.payments = payments
        self.courses = courses
        self.progress = progress
        self.gateway = gateway
        self.default_currency = default_currency
        self.manual_currency = manual_currency

    # ==========================================================================
    # Submission
    # ==========================================================================

    async def submit(
        self,
        student_id: UUID,
        course_id: UUID,
        amount: Decimal | None = None,
        method: PaymentMethod = PaymentMethod.MOCK,
        manual_transaction_id: str | None = None,
        receipt_ref: str | None = None,
    ) -> PaymentRecord:
        """Create a pending payment for (student, course).

        Gateway submissions are charged immediately and stay pending until an
        admin verifies them. Manual submissions carry the student's own
        transaction id and wait for verification as well.

        Args:
            student_id: Paying student
            course_id: Course being bought
            amount: Amount paid; defaults to the course price
            method: Payment method
            manual_transaction_id: Transaction id from the student's bank or wallet
            receipt_ref: Reference to the uploaded receipt

        Returns:
            The stored payment; status FAILED if the gateway declined

        Raises:
            NotFoundError: Course does not exist
            ConflictError: Already enrolled, or a pending or completed payment exists
            InvalidStateError: Manual payment without a transaction id
        """
        manual_id = (manual_transaction_id or "").strip()
        if method.is_manual and not manual_id:
            raise InvalidStateError(
                "Please provide transaction ID", "manual_transaction_id_required"
            )

        course = await self._get_course(course_id)

        if await self.courses.is_enrolled(course_id, student_id):
            raise ConflictError(
                "You are already enrolled in this course", "already_enrolled"
            )
        await self._ensure_not_completed(student_id, course_id)

        payment = PaymentRecord(
            student_id=student_id,
            course_id=course_id,
            amount=course.price if amount is None else amount,
            currency=self.manual_currency if method.is_manual else self.default_currency,
            payment_method=method,
            payment_reference_id=generate_payment_reference_id()
            if method.is_manual
            else None,
            manual_transaction_id=manual_id or None,
            receipt_ref=receipt_ref,
        )

        if not await self.payments.reserve_slot(
            student_id, course_id, PaymentSlot.PENDING, payment.id
        ):
            logger.info(
                "payment_submit_conflict",
                student_id=str(student_id),
                course_id=str(course_id),
            )
            raise ConflictError(
                "You already have a pending payment for this course. "
                "Please wait for admin approval.",
                "payment_pending",
            )

        try:
            # A verification may have completed between the first check and the claim
            await self._ensure_not_completed(student_id, course_id)

            if method is PaymentMethod.MOCK:
                charge = await self.gateway.charge(
                    payment.amount,
                    {"student_id": student_id, "course_id": course_id},
                )
                payment.transaction_id = charge.transaction_id
                if not charge.success:
                    payment.status = PaymentStatus.FAILED

            await self.payments.insert(payment)
        except EngineError:
            await self.payments.release_slot(
                student_id, course_id, PaymentSlot.PENDING, payment.id
            )
            raise
        except Exception:
            logger.exception(
                "payment_submit_failed",
                payment_id=str(payment.id),
                student_id=str(student_id),
                course_id=str(course_id),
            )
            await self.payments.release_slot(
                student_id, course_id, PaymentSlot.PENDING, payment.id
            )
            raise

        if payment.status is PaymentStatus.FAILED:
            await self.payments.release_slot(
                student_id, course_id, PaymentSlot.PENDING, payment.id
            )
            logger.warning(
                "payment_charge_failed",
                payment_id=str(payment.id),
                transaction_id=payment.transaction_id,
            )
            return payment

        logger.info(
            "payment_submitted",
            payment_id=str(payment.id),
            student_id=str(student_id),
            course_id=str(course_id),
            amount=str(payment.amount),
            method=method.value,
            transaction_id=payment.transaction_id,
            payment_reference_id=payment.payment_reference_id,
        )
        return payment

    # ==========================================================================
    # Admin Transitions
    # ==========================================================================

    async def verify(self, payment_id: UUID, admin_id: UUID) -> PaymentRecord:
        """Move a pending payment to completed and grant the entitlement.

        Raises:
            NotFoundError: No such payment
            InvalidStateError: Payment is not pending (including already verified)
            ConflictError: Another payment for the pair already completed
        """
        payment = await self._get_payment(payment_id)

        if payment.status is PaymentStatus.COMPLETED:
            raise InvalidStateError(
                "Payment is already verified", "payment_already_verified"
            )
        if payment.status is not PaymentStatus.PENDING:
            raise InvalidStateError(
                f"Cannot verify a {payment.status.value} payment", "payment_not_pending"
            )

        if not await self.payments.reserve_slot(
            payment.student_id, payment.course_id, PaymentSlot.COMPLETED, payment.id
        ):
            holder = await self.payments.get_slot_holder(
                payment.student_id, payment.course_id, PaymentSlot.COMPLETED
            )
            if holder == payment.id:
                raise InvalidStateError(
                    "Payment is already verified", "payment_already_verified"
                )
            raise ConflictError(
                "Payment already completed for this course", "payment_completed"
            )

        payment.status = PaymentStatus.COMPLETED
        payment.verified_by = admin_id
        payment.verified_at = datetime.now(UTC)

        if not await self.payments.update_status(payment, expected=PaymentStatus.PENDING):
            await self.payments.release_slot(
                payment.student_id, payment.course_id, PaymentSlot.COMPLETED, payment.id
            )
            raise InvalidStateError("Payment is no longer pending", "payment_not_pending")

        await self.payments.release_slot(
            payment.student_id, payment.course_id, PaymentSlot.PENDING, payment.id
        )

        await self._complete_enrollment(payment)

        logger.info(
            "payment_verified",
            admin_id=str(admin_id),
            payment_id=str(payment.id),
            transaction_id=payment.transaction_id,
            student_id=str(payment.student_id),
            course_id=str(payment.course_id),
        )
        return payment

    async def reject(
        self, payment_id: UUID, admin_id: UUID, reason: str | None = None
    ) -> PaymentRecord:
        """Move a pending payment to rejected. No entitlement side effect.

        Raises:
            NotFoundError: No such payment
            InvalidStateError: Payment is completed or otherwise not pending
        """
        payment = await self._get_payment(payment_id)

        if payment.status is PaymentStatus.COMPLETED:
            raise InvalidStateError(
                "Cannot reject a completed payment", "payment_completed"
            )
        if payment.status is not PaymentStatus.PENDING:
            raise InvalidStateError(
                f"Cannot reject a {payment.status.value} payment", "payment_not_pending"
            )

        payment.status = PaymentStatus.REJECTED
        payment.rejection_reason = reason or ""

        if not await self.payments.update_status(payment, expected=PaymentStatus.PENDING):
            current = await self.payments.get(payment_id)
            if current and current.status is PaymentStatus.COMPLETED:
                raise InvalidStateError(
                    "Cannot reject a completed payment", "payment_completed"
                )
            raise InvalidStateError("Payment is no longer pending", "payment_not_pending")

        await self.payments.release_slot(
            payment.student_id, payment.course_id, PaymentSlot.PENDING, payment.id
        )

        logger.info(
            "payment_rejected",
            admin_id=str(admin_id),
            payment_id=str(payment.id),
            transaction_id=payment.transaction_id,
            reason=reason or "Not provided",
        )
        return payment

    async def reconcile(self, payment_id: UUID, admin_id: UUID) -> PaymentRecord:
        """Re-run the grant step of a completed payment.

        For payments whose entitlement side effect was interrupted after the
        status change. A no-op when the grant already ran.
        """
        payment = await self._get_payment(payment_id)
        if payment.status is not PaymentStatus.COMPLETED:
            raise InvalidStateError(
                "Only completed payments can be reconciled", "payment_not_completed"
            )

        await self._complete_enrollment(payment)

        logger.info(
            "payment_reconciled",
            admin_id=str(admin_id),
            payment_id=str(payment.id),
            transaction_id=payment.transaction_id,
        )
        return payment

    # ==========================================================================
    # Free Enrollment
    # ==========================================================================

    async def enroll_free(self, student_id: UUID, course_id: UUID) -> Course:
        """Enroll a student in a course priced at zero.

        Raises:
            NotFoundError: Course does not exist
            InvalidStateError: Course is not free
            ConflictError: Student already enrolled
        """
        course = await self._get_course(course_id)

        if not course.is_free:
            raise InvalidStateError("Course requires payment", "payment_required")

        if await self.courses.is_enrolled(course_id, student_id):
            raise ConflictError(
                "You are already enrolled in this course", "already_enrolled"
            )

        await self._ensure_entitlement(course_id, student_id)
        await self.progress.ensure_progress_record(student_id, course_id)

        logger.info(
            "free_enrollment_created",
            student_id=str(student_id),
            course_id=str(course_id),
        )
        return course

    # ==========================================================================
    # Listing
    # ==========================================================================

    async def list_my_payments(self, student_id: UUID) -> list[PaymentRecord]:
        return await self.payments.list_by_student(student_id)

    async def list_payments(
        self, status: PaymentStatus | None = None, limit: int = 50
    ) -> list[PaymentRecord]:
        return await self.payments.list_all(status=status, limit=limit)

    async def get_payment(
        self, payment_id: UUID, principal: PrincipalContext
    ) -> PaymentRecord:
        """Get a payment visible to ``principal`` (its student or an admin)."""
        payment = await self._get_payment(payment_id)
        if payment.student_id != principal.id and not principal.is_admin:
            raise AuthorizationError(
                "Not authorized to access this payment", "payment_forbidden"
            )
        return payment

    # ==========================================================================
    # Private Helpers
    # ==========================================================================

    async def _get_course(self, course_id: UUID) -> Course:
        course = await self.courses.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", "course_not_found")
        return course

    async def _get_payment(self, payment_id: UUID) -> PaymentRecord:
        payment = await self.payments.get(payment_id)
        if payment is None:
            raise NotFoundError("Payment not found", "payment_not_found")
        return payment

    async def _ensure_not_completed(self, student_id: UUID, course_id: UUID) -> None:
        if await self.payments.get_slot_holder(
            student_id, course_id, PaymentSlot.COMPLETED
        ):
            raise ConflictError(
                "Payment already completed for this course", "payment_completed"
            )

    async def _complete_enrollment(self, payment: PaymentRecord) -> None:
        """Grant step of a completed payment, safe to repeat."""
        if payment.enrollment_completed:
            logger.info("enrollment_already_completed", payment_id=str(payment.id))
            return

        await self._ensure_entitlement(payment.course_id, payment.student_id)
        await self.progress.ensure_progress_record(payment.student_id, payment.course_id)
        await self.payments.mark_enrollment_completed(payment.id)
        payment.enrollment_completed = True

    async def _ensure_entitlement(self, course_id: UUID, student_id: UUID) -> bool:
        """Write both sides of the entitlement unless both are already present."""
        if await self.courses.has_entitlement(course_id, student_id):
            logger.info(
                "entitlement_already_present",
                student_id=str(student_id),
                course_id=str(course_id),
            )
            return False

        await self.courses.grant_entitlement(course_id, student_id)
        logger.info(
            "entitlement_granted",
            student_id=str(student_id),
            course_id=str(course_id),
        )
        return True
