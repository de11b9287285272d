"""Stripe payment gateway.

Charges a saved PaymentMethod with an off-session, immediately confirmed
PaymentIntent. Card declines become failed results.
"""

from typing import Any

from steward.core.config import settings
from steward.services.payment_gateway import (
    NO_PAYMENT_METHOD,
    ChargeResult,
    PaymentGatewayBase,
)


class StripeGateway(PaymentGatewayBase):
    """Stripe off-session charges."""

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or settings.stripe_api_key
        self._stripe: Any = None

    @property
    def stripe(self) -> Any:
        """Lazy-load stripe module."""
        if self._stripe is None:
            try:
                import stripe

                stripe.api_key = self.api_key
                self._stripe = stripe
            except ImportError as e:
                raise ImportError("stripe package not installed. Run: pip install stripe") from e
        return self._stripe

    @property
    def name(self) -> str:
        return "stripe"

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

        try:
            intent = self.stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency.lower(),
                payment_method=payment_method_token,
                off_session=True,
                confirm=True,
                description=description or None,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            )
        except self.stripe.CardError as e:
            reason = getattr(e, "user_message", None) or str(e) or "Card declined"
            return ChargeResult(success=False, failure_reason=reason)

        if intent.status == "succeeded":
            return ChargeResult(success=True, transaction_id=intent.id)
        return ChargeResult(
            success=False,
            transaction_id=intent.id,
            failure_reason=f"Payment not completed (status: {intent.status})",
        )
