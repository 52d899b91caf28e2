# backend/schoolmaster/services/payment_service.py
"""
Payment glue over Stripe manual-capture PaymentIntents.

Invitations authorize the lesson price up front; the hold is captured when
a tutor accepts and cancelled when the invitation is rejected, expires or is
withdrawn. Captured payments that cannot be turned into a lesson are
refunded.
"""

from decimal import Decimal
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
import stripe

from ..core.config import settings
from ..core.exceptions import PaymentException, PaymentsUnavailableException
from .base import BaseService

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """100.00 PLN -> 10000 grosze."""
    return int((Decimal(str(amount)) * 100).to_integral_value())


class PaymentService(BaseService):
    """Thin wrapper over stripe.PaymentIntent / stripe.Refund."""

    def __init__(self, db: Optional[Session] = None):
        super().__init__(db)
        self.stripe_configured = False
        if settings.stripe_configured:
            stripe.api_key = settings.stripe_secret_key.get_secret_value()
            stripe.max_network_retries = 1
            self.stripe_configured = True
        else:
            self.logger.warning("Stripe secret key not configured - card payments disabled")

    def _check_stripe_configured(self) -> None:
        """Check if Stripe is properly configured before making API calls."""
        if not self.stripe_configured:
            raise PaymentsUnavailableException()

    @BaseService.measure_operation("stripe_authorize")
    def authorize(
        self,
        amount: Decimal,
        metadata: Dict[str, Any],
        *,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a manual-capture PaymentIntent for the lesson price.

        Returns:
            {"payment_intent_id", "client_secret", "status"}
        """
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=currency or settings.lesson_currency,
                capture_method="manual",
                metadata={key: str(value) for key, value in metadata.items() if value is not None},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise PaymentException(
                "Błąd autoryzacji płatności kartą. Sprawdź dane karty i spróbuj ponownie.",
                code="PAYMENT_AUTHORIZATION_FAILED",
            )
        self.log_operation("stripe_authorize", payment_intent_id=intent.id)
        return {
            "payment_intent_id": intent.id,
            "client_secret": getattr(intent, "client_secret", None),
            "status": getattr(intent, "status", None),
        }

    @BaseService.measure_operation("stripe_capture")
    def capture(self, payment_intent_id: str) -> Dict[str, Any]:
        """Capture a held authorization."""
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.capture(
                payment_intent_id, idempotency_key=f"capture:{payment_intent_id}"
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error capturing payment intent {payment_intent_id}: {str(e)}")
            raise PaymentException(
                "Błąd podczas pobierania płatności z karty", code="PAYMENT_CAPTURE_FAILED"
            )
        return {"payment_intent_id": payment_intent_id, "status": getattr(intent, "status", None)}

    @BaseService.measure_operation("stripe_release")
    def release(self, payment_intent_id: str) -> Dict[str, Any]:
        """Cancel an uncaptured authorization so the hold drops off the card."""
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.cancel(
                payment_intent_id, idempotency_key=f"cancel:{payment_intent_id}"
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error canceling payment intent {payment_intent_id}: {str(e)}")
            raise PaymentException(
                "Nie udało się zwolnić blokady środków na karcie", code="PAYMENT_RELEASE_FAILED"
            )
        return {"payment_intent_id": payment_intent_id, "status": getattr(intent, "status", None)}

    @BaseService.measure_operation("stripe_refund")
    def refund(self, payment_intent_id: str, amount: Optional[Decimal] = None) -> Dict[str, Any]:
        """Refund a captured payment, fully or by ``amount``."""
        self._check_stripe_configured()
        params: Dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount is not None:
            params["amount"] = to_minor_units(amount)
        try:
            refund = stripe.Refund.create(
                **params, idempotency_key=f"refund:{payment_intent_id}:{params.get('amount', 'full')}"
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error refunding payment intent {payment_intent_id}: {str(e)}")
            raise PaymentException("Nie udało się zwrócić płatności", code="PAYMENT_REFUND_FAILED")
        self.log_operation("stripe_refund", payment_intent_id=payment_intent_id, refund_id=refund.id)
        return {"refund_id": refund.id, "status": getattr(refund, "status", None)}
