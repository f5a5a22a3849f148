# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Payment store.

Uniqueness of pending and completed payments per (student, course) is
enforced by lightweight transactions on ``payment_slots``, and status
transitions are compare-and-set updates on ``payments``. No check-then-act
sequence in the service is trusted on its own.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from coursegate.core.logging import get_logger

from .models import PaymentRecord, PaymentSlot, PaymentStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


class PaymentStore(Protocol):
    """What the enrollment state machine needs from payment storage."""

    async def reserve_slot(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot, payment_id: UUID
    ) -> bool: ...

    async def release_slot(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot, payment_id: UUID
    ) -> None: ...

    async def get_slot_holder(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot
    ) -> UUID | None: ...

    async def insert(self, payment: PaymentRecord) -> None: ...

    async def get(self, payment_id: UUID) -> PaymentRecord | None: ...

    async def update_status(self, payment: PaymentRecord, expected: PaymentStatus) -> bool: ...

    async def mark_enrollment_completed(self, payment_id: UUID) -> None: ...

    async def list_by_student(self, student_id: UUID) -> list[PaymentRecord]: ...

    async def list_all(
        self, status: PaymentStatus | None = None, limit: int = 50
    ) -> list[PaymentRecord]: ...


class CassandraPaymentStore:
    """Payment store backed by Cassandra lightweight transactions."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Slots
        self._reserve_slot = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payment_slots
            (student_id, course_id, slot, payment_id, claimed_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._release_slot = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.payment_slots
            WHERE student_id = ? AND course_id = ? AND slot = ?
            IF payment_id = ?
        """)

        self._get_slot = self.session.prepare(f"""
            SELECT payment_id FROM {self.keyspace}.payment_slots
            WHERE student_id = ? AND course_id = ? AND slot = ?
        """)

        # Payments
        self._insert_payment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payments
            (id, student_id, course_id, amount, currency, payment_method, status,
             transaction_id, payment_reference_id, manual_transaction_id,
             receipt_ref, enrollment_completed, verified_by, verified_at,
             rejection_reason, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_payment_by_student = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payments_by_student
            (student_id, created_at, payment_id, course_id)
            VALUES (?, ?, ?, ?)
        """)

        self._get_payment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.payments
            WHERE id = ?
        """)

        self._update_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.payments
            SET status = ?, verified_by = ?, verified_at = ?,
                rejection_reason = ?, updated_at = ?
            WHERE id = ?
            IF status = ?
        """)

        self._mark_enrollment_completed = self.session.prepare(f"""
            UPDATE {self.keyspace}.payments
            SET enrollment_completed = true, updated_at = ?
            WHERE id = ?
            IF EXISTS
        """)

        self._get_student_payment_ids = self.session.prepare(f"""
            SELECT payment_id FROM {self.keyspace}.payments_by_student
            WHERE student_id = ?
        """)

        self._list_payments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.payments
            LIMIT ?
        """)

        self._list_payments_by_status = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.payments
            WHERE status = ?
            LIMIT ?
        """)

    # ==========================================================================
    # Uniqueness Slots
    # ==========================================================================

    async def reserve_slot(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot, payment_id: UUID
    ) -> bool:
        """Claim ``slot`` for ``payment_id``.

        Returns:
            True if claimed, False if another payment holds it
        """
        result = await self.session.aexecute(
            self._reserve_slot,
            [student_id, course_id, slot.value, payment_id, datetime.now(UTC)],
        )
        return result.was_applied

    async def release_slot(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot, payment_id: UUID
    ) -> None:
        """Free ``slot`` if ``payment_id`` still holds it."""
        result = await self.session.aexecute(
            self._release_slot,
            [student_id, course_id, slot.value, payment_id],
        )
        if not result.was_applied:
            logger.debug(
                "payment_slot_not_held",
                student_id=str(student_id),
                course_id=str(course_id),
                slot=slot.value,
                payment_id=str(payment_id),
            )

    async def get_slot_holder(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot
    ) -> UUID | None:
        result = await self.session.aexecute(
            self._get_slot, [student_id, course_id, slot.value]
        )
        row = result.one()
        return row.payment_id if row else None

    # ==========================================================================
    # Payments
    # ==========================================================================

    async def insert(self, payment: PaymentRecord) -> None:
        """Save payment to both tables (dual-write pattern)."""
        await self.session.aexecute(
            self._insert_payment,
            [
                payment.id,
                payment.student_id,
                payment.course_id,
                payment.amount,
                payment.currency,
                payment.payment_method.value,
                payment.status.value,
                payment.transaction_id,
                payment.payment_reference_id,
                payment.manual_transaction_id,
                payment.receipt_ref,
                payment.enrollment_completed,
                payment.verified_by,
                payment.verified_at,
                payment.rejection_reason,
                payment.created_at,
                payment.updated_at,
            ],
        )

        await self.session.aexecute(
            self._insert_payment_by_student,
            [payment.student_id, payment.created_at, payment.id, payment.course_id],
        )

    async def get(self, payment_id: UUID) -> PaymentRecord | None:
        result = await self.session.aexecute(self._get_payment, [payment_id])
        row = result.one()
        return PaymentRecord.from_row(row) if row else None

    async def update_status(self, payment: PaymentRecord, expected: PaymentStatus) -> bool:
        """Persist ``payment.status`` only if the stored status is ``expected``.

        Returns:
            True if the transition was applied
        """
        payment.updated_at = datetime.now(UTC)
        result = await self.session.aexecute(
            self._update_status,
            [
                payment.status.value,
                payment.verified_by,
                payment.verified_at,
                payment.rejection_reason,
                payment.updated_at,
                payment.id,
                expected.value,
            ],
        )
        return result.was_applied

    async def mark_enrollment_completed(self, payment_id: UUID) -> None:
        await self.session.aexecute(
            self._mark_enrollment_completed, [datetime.now(UTC), payment_id]
        )

    async def list_by_student(self, student_id: UUID) -> list[PaymentRecord]:
        """Student's payments, newest first."""
        rows = await self.session.aexecute(self._get_student_payment_ids, [student_id])

        payments = []
        for row in rows:
            payment = await self.get(row.payment_id)
            if payment:
                payments.append(payment)
        return payments

    async def list_all(
        self, status: PaymentStatus | None = None, limit: int = 50
    ) -> list[PaymentRecord]:
        """All payments, optionally filtered by status, newest first."""
        if status is None:
            rows = await self.session.aexecute(self._list_payments, [limit])
        else:
            rows = await self.session.aexecute(
                self._list_payments_by_status, [status.value, limit]
            )

        payments = [PaymentRecord.from_row(row) for row in rows]
        payments.sort(key=lambda p: p.created_at, reverse=True)
        return payments
