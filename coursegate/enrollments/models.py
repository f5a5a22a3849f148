"""Payment records and Cassandra schema for course enrollment.

A payment moves through:
- PENDING: submitted, awaiting admin verification
- COMPLETED: verified, entitlement granted
- REJECTED: refused by an admin, may be resubmitted as a new payment
- FAILED: gateway charge failed
- REFUNDED: set outside the engine

Tables:
- payments: one row per payment
- payments_by_student: payment ids per student, for "my payments"
- payment_slots: uniqueness guard, at most one pending and one completed
  payment per (student, course)
"""

import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from cassandra.cluster import Row


class PaymentStatus(str, Enum):
    """Payment lifecycle state."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """How the student paid."""

    MOCK = "mock"  # Gateway submission
    EASYPAISA = "easypaisa"
    JAZZCASH = "jazzcash"
    BANK_TRANSFER = "bank_transfer"

    @property
    def is_manual(self) -> bool:
        return self is not PaymentMethod.MOCK


class PaymentSlot(str, Enum):
    """Uniqueness slots per (student, course)."""

    PENDING = "pending"
    COMPLETED = "completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PAYMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payments (
    id UUID PRIMARY KEY,
    student_id UUID,
    course_id UUID,
    amount DECIMAL,
    currency TEXT,
    payment_method TEXT,
    status TEXT,
    transaction_id TEXT,
    payment_reference_id TEXT,
    manual_transaction_id TEXT,
    receipt_ref TEXT,
    enrollment_completed BOOLEAN,
    verified_by UUID,
    verified_at TIMESTAMP,
    rejection_reason TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

PAYMENTS_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payments_by_student (
    student_id UUID,
    created_at TIMESTAMP,
    payment_id UUID,
    course_id UUID,
    PRIMARY KEY ((student_id), created_at, payment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, payment_id ASC)
"""

# Lightweight transactions on this table serialize submissions per pair
PAYMENT_SLOTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payment_slots (
    student_id UUID,
    course_id UUID,
    slot TEXT,
    payment_id UUID,
    claimed_at TIMESTAMP,
    PRIMARY KEY ((student_id, course_id), slot)
)
"""

# Index for the admin status filter
PAYMENTS_STATUS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.payments (status)
"""

ENROLLMENTS_TABLES_CQL = [
    PAYMENTS_TABLE_CQL,
    PAYMENTS_BY_STUDENT_TABLE_CQL,
    PAYMENT_SLOTS_TABLE_CQL,
    PAYMENTS_STATUS_INDEX_CQL,
]


# ==============================================================================
# Identifiers
# ==============================================================================

_BASE36 = string.digits + string.ascii_lowercase


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_transaction_id() -> str:
    """Internal tracking id, ``TXN-<epoch ms>-<9 base36 chars>``."""
    return f"TXN-{int(time.time() * 1000)}-{_random_base36(9).upper()}"


def generate_payment_reference_id() -> str:
    """Human-facing reference for manual payments, ``PAY-<epoch ms>-<6 chars>``."""
    return f"PAY-{int(time.time() * 1000)}-{_random_base36(6).upper()}"


# ==============================================================================
# Entity
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


@dataclass
class PaymentRecord:
    """A student's payment for one course."""

    student_id: UUID
    course_id: UUID
    amount: Decimal
    currency: str = "USD"
    payment_method: PaymentMethod = PaymentMethod.MOCK
    status: PaymentStatus = PaymentStatus.PENDING
    id: UUID = field(default_factory=uuid4)
    transaction_id: str = field(default_factory=generate_transaction_id)
    payment_reference_id: str | None = None
    manual_transaction_id: str | None = None
    receipt_ref: str | None = None
    enrollment_completed: bool = False
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: "Row") -> "PaymentRecord":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            student_id=row.student_id,
            course_id=row.course_id,
            amount=row.amount if row.amount is not None else Decimal(0),
            currency=row.currency or "USD",
            payment_method=PaymentMethod(row.payment_method or PaymentMethod.MOCK.value),
            status=PaymentStatus(row.status),
            transaction_id=row.transaction_id,
            payment_reference_id=row.payment_reference_id,
            manual_transaction_id=row.manual_transaction_id,
            receipt_ref=row.receipt_ref,
            enrollment_completed=bool(row.enrollment_completed),
            verified_by=row.verified_by,
            verified_at=ensure_utc_aware(row.verified_at),
            rejection_reason=row.rejection_reason,
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at) or datetime.now(UTC),
        )
