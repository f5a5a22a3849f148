"""HTTP endpoints for payments and enrollment.

Provides:
- POST /v1/payments - Pay for a course through the gateway
- POST /v1/payments/manual - Record an EasyPaisa/JazzCash/bank payment
- GET  /v1/payments - List my payments
- GET  /v1/payments/{payment_id} - Get one payment
- POST /v1/courses/{course_id}/enroll - Enroll in a free course
- Admin endpoints for listing, verifying and rejecting payments
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from coursegate.auth.dependencies import (
    AdminPrincipal,
    CurrentPrincipal,
    StudentPrincipal,
)

from .dependencies import EnrollmentServiceDep
from .models import PaymentMethod, PaymentStatus
from .schemas import (
    EnrollmentResponse,
    ManualPaymentRequest,
    PaymentActionResponse,
    PaymentListResponse,
    PaymentResponse,
    RejectPaymentRequest,
    SubmitPaymentRequest,
)


router = APIRouter(prefix="/v1/payments", tags=["payments"])
courses_router = APIRouter(prefix="/v1/courses", tags=["enrollment"])
admin_router = APIRouter(prefix="/v1/admin/payments", tags=["admin-payments"])


# ==============================================================================
# Student Endpoints
# ==============================================================================


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Pay for a course",
)
async def submit_payment(
    request: SubmitPaymentRequest,
    service: EnrollmentServiceDep,
    principal: StudentPrincipal,
) -> PaymentResponse:
    """Charge the course price through the gateway.

    The payment stays pending until an admin verifies it.
    """
    payment = await service.submit(
        student_id=principal.id,
        course_id=request.course_id,
        method=PaymentMethod.MOCK,
    )
    return PaymentResponse.from_record(payment)


@router.post(
    "/manual",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a manual payment",
)
async def submit_manual_payment(
    request: ManualPaymentRequest,
    service: EnrollmentServiceDep,
    principal: StudentPrincipal,
) -> PaymentResponse:
    """Record a payment made by wallet or bank transfer.

    A rejected payment may be resubmitted; this creates a new payment.
    """
    payment = await service.submit(
        student_id=principal.id,
        course_id=request.course_id,
        method=request.payment_method,
        manual_transaction_id=request.manual_transaction_id,
        receipt_ref=request.receipt_ref,
    )
    return PaymentResponse.from_record(payment)


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="List my payments",
)
async def list_my_payments(
    service: EnrollmentServiceDep,
    principal: CurrentPrincipal,
) -> PaymentListResponse:
    payments = await service.list_my_payments(principal.id)
    items = [PaymentResponse.from_record(p) for p in payments]
    return PaymentListResponse(items=items, total=len(items))


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get a payment",
)
async def get_payment(
    payment_id: UUID,
    service: EnrollmentServiceDep,
    principal: CurrentPrincipal,
) -> PaymentResponse:
    """Get a payment owned by the caller (admins see all)."""
    payment = await service.get_payment(payment_id, principal)
    return PaymentResponse.from_record(payment)


@courses_router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a free course",
)
async def enroll_in_free_course(
    course_id: UUID,
    service: EnrollmentServiceDep,
    principal: StudentPrincipal,
) -> EnrollmentResponse:
    """Enroll the current student in a course priced at zero."""
    await service.enroll_free(principal.id, course_id)
    return EnrollmentResponse(course_id=course_id, student_id=principal.id)


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@admin_router.get(
    "",
    response_model=PaymentListResponse,
    summary="List all payments",
)
async def list_payments(
    service: EnrollmentServiceDep,
    _: AdminPrincipal,
    payment_status: PaymentStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
) -> PaymentListResponse:
    payments = await service.list_payments(status=payment_status, limit=limit)
    items = [PaymentResponse.from_record(p) for p in payments]
    return PaymentListResponse(items=items, total=len(items))


@admin_router.put(
    "/{payment_id}/verify",
    response_model=PaymentActionResponse,
    summary="Verify a pending payment",
)
async def verify_payment(
    payment_id: UUID,
    service: EnrollmentServiceDep,
    admin: AdminPrincipal,
) -> PaymentActionResponse:
    """Complete a pending payment and enroll its student."""
    payment = await service.verify(payment_id, admin.id)
    return PaymentActionResponse(
        message="Payment verified and student enrolled successfully",
        payment=PaymentResponse.from_record(payment),
    )


@admin_router.put(
    "/{payment_id}/reject",
    response_model=PaymentActionResponse,
    summary="Reject a pending payment",
)
async def reject_payment(
    payment_id: UUID,
    service: EnrollmentServiceDep,
    admin: AdminPrincipal,
    request: RejectPaymentRequest | None = None,
) -> PaymentActionResponse:
    reason = request.reason if request else None
    payment = await service.reject(payment_id, admin.id, reason)
    return PaymentActionResponse(
        message="Payment rejected successfully",
        payment=PaymentResponse.from_record(payment),
    )


@admin_router.post(
    "/{payment_id}/reconcile",
    response_model=PaymentActionResponse,
    summary="Re-run enrollment for a completed payment",
)
async def reconcile_payment(
    payment_id: UUID,
    service: EnrollmentServiceDep,
    admin: AdminPrincipal,
) -> PaymentActionResponse:
    """Finish the enrollment of a completed payment whose grant was interrupted."""
    payment = await service.reconcile(payment_id, admin.id)
    return PaymentActionResponse(
        message="Enrollment reconciled",
        payment=PaymentResponse.from_record(payment),
    )
