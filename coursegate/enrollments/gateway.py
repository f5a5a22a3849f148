"""Payment gateway abstraction.

The engine never processes money itself. It asks a gateway to charge and
records the outcome.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from coursegate.core.logging import get_logger

from .models import generate_transaction_id


logger = get_logger(__name__)


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of a gateway charge."""

    transaction_id: str
    success: bool
    message: str = ""


class PaymentGateway(Protocol):
    async def charge(self, amount: Decimal, metadata: dict[str, Any]) -> ChargeResult: ...


class MockPaymentGateway:
    """Gateway stand-in: waits ``delay_seconds`` and always succeeds."""

    def __init__(self, delay_seconds: float = 1.0):
        self.delay_seconds = delay_seconds

    async def charge(self, amount: Decimal, metadata: dict[str, Any]) -> ChargeResult:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        result = ChargeResult(
            transaction_id=generate_transaction_id(),
            success=True,
            message="Payment processed successfully",
        )
        logger.info(
            "mock_charge_processed",
            amount=str(amount),
            transaction_id=result.transaction_id,
            **{k: str(v) for k, v in metadata.items()},
        )
        return result
