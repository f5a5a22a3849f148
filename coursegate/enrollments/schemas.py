"""Pydantic schemas for payments and enrollment.

Request/Response models for:
- Gateway and manual payment submission
- Admin verification and rejection
- Free enrollment
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import PaymentMethod, PaymentRecord, PaymentStatus


# ==============================================================================
# Request Schemas
# ==============================================================================


class SubmitPaymentRequest(BaseModel):
    """Request to pay for a course through the gateway."""

    course_id: UUID = Field(..., description="Course to pay for")


class ManualPaymentRequest(BaseModel):
    """Request to record a payment made outside the gateway."""

    course_id: UUID = Field(..., description="Course paid for")
    payment_method: PaymentMethod = Field(..., description="Wallet or bank used")
    manual_transaction_id: str = Field(
        ..., min_length=1, max_length=100, description="Transaction ID from the receipt"
    )
    receipt_ref: str | None = Field(
        None, max_length=500, description="Reference to the uploaded receipt"
    )

    @field_validator("payment_method")
    @classmethod
    def validate_manual_method(cls, v: PaymentMethod) -> PaymentMethod:
        """Gateway payments go through POST /v1/payments."""
        if not v.is_manual:
            raise ValueError(
                "Invalid payment method. Must be easypaisa, jazzcash, or bank_transfer"
            )
        return v

    @field_validator("manual_transaction_id")
    @classmethod
    def validate_transaction_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please provide transaction ID")
        return v


class RejectPaymentRequest(BaseModel):
    """Request to reject a pending payment (admin)."""

    reason: str | None = Field(None, max_length=500, description="Reason for rejection")


# ==============================================================================
# Response Schemas
# ==============================================================================


class PaymentResponse(BaseModel):
    """Response schema for a single payment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    course_id: UUID
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: str
    payment_reference_id: str | None = None
    manual_transaction_id: str | None = None
    receipt_ref: str | None = None
    enrollment_completed: bool
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, payment: PaymentRecord) -> "PaymentResponse":
        """Create response from PaymentRecord entity."""
        return cls.model_validate(payment)


class PaymentListResponse(BaseModel):
    """Response schema for listing payments."""

    items: list[PaymentResponse]
    total: int


class PaymentActionResponse(BaseModel):
    """Response for admin actions on a payment."""

    message: str
    payment: PaymentResponse


class EnrollmentResponse(BaseModel):
    """Response for free enrollment."""

    course_id: UUID
    student_id: UUID
    enrolled: bool = True
    message: str = "Enrolled successfully"
