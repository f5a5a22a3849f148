"""Payments and enrollment.

State machine turning a payment into a course entitlement:
- pending -> completed: entitlement granted, progress record created
- pending -> rejected: no side effect, resubmission allowed
"""

from .gateway import ChargeResult, MockPaymentGateway, PaymentGateway
from .models import PaymentMethod, PaymentRecord, PaymentStatus
from .service import EnrollmentService
from .store import CassandraPaymentStore, PaymentStore


__all__ = [
    "CassandraPaymentStore",
    "ChargeResult",
    "EnrollmentService",
    "MockPaymentGateway",
    "PaymentGateway",
    "PaymentMethod",
    "PaymentRecord",
    "PaymentStatus",
    "PaymentStore",
]
