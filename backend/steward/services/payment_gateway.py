"""Payment gateway abstraction layer.

A gateway charges a stored payment method off-session and reports the
outcome. Declines are returned as failed results; a gateway only raises for
unexpected errors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from steward.core.config import settings

NO_PAYMENT_METHOD = "No payment method configured"


@dataclass
class ChargeResult:
    """Outcome of one charge attempt."""

    success: bool
    transaction_id: str | None = None
    failure_reason: str | None = None


class PaymentGatewayBase(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the gateway identifier."""
        pass  # pragma: no cover

    @abstractmethod
    def charge(
        self,
        *,
        amount_cents: int,
        currency: str,
        payment_method_token: str | None,
        idempotency_key: str,
        description: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> ChargeResult:
        """Charge a saved payment method."""
        pass  # pragma: no cover


class ManualGateway(PaymentGatewayBase):
    """Gateway for offline collection.

    Any pledge with a saved payment-method reference is treated as collected.
    """

    @property
    def name(self) -> str:
        return "manual"

    def charge(
        self,
        *,
        amount_cents: int,
        currency: str,
        payment_method_token: str | None,
        idempotency_key: str,
        description: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> ChargeResult:
        if not payment_method_token:
            return ChargeResult(success=False, failure_reason=NO_PAYMENT_METHOD)
        return ChargeResult(success=True, transaction_id=f"manual_{idempotency_key}")


def get_payment_gateway(name: str | None = None) -> PaymentGatewayBase:
    """Factory function to get the configured payment gateway."""
    name = (name or settings.PAYMENT_GATEWAY).lower()
    if name == "manual":
        return ManualGateway()
    if name == "stripe":
        from steward.services.payment_gateways.stripe import StripeGateway

        return StripeGateway()
    raise ValueError(f"Unsupported payment gateway: {name}")
