"""
app/services/stripe_service.py

Purpose: Stripe integration

- Creates customers and payment intents
- Lists saved card payment methods
- Verifies webhook deliveries (stripe.Webhook.construct_event)
- Falls back to a dummy key when STRIPE_SECRET is unset so routes still mount

The stripe SDK is blocking, so every API call runs in the threadpool.
"""

from typing import Optional, Dict, Any, List

import stripe
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import WebhookSignatureError
from app.core.logging import get_logger
from utils.constants import DUMMY_STRIPE_SECRET

logger = get_logger(__name__)


class StripeServiceError(Exception):
    """Raised when Stripe rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, stripe_code: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.stripe_code = stripe_code
        super().__init__(message)


class StripeService:
    """
    Async facade over the subset of the Stripe API this backend uses.
    The key is passed per request, never stored on the stripe module.
    """

    def __init__(self, secret_key: Optional[str] = None, max_network_retries: Optional[int] = None):
        if not secret_key:
            logger.warning("Stripe secret not set. Set STRIPE_SECRET; using a dummy key so endpoints still mount")
            secret_key = DUMMY_STRIPE_SECRET
        self.secret_key = secret_key

        if max_network_retries is None:
            max_network_retries = settings.STRIPE_MAX_NETWORK_RETRIES
        stripe.max_network_retries = max_network_retries

    @property
    def is_configured(self) -> bool:
        return self.secret_key != DUMMY_STRIPE_SECRET

    async def _call(self, operation: str, func, **params) -> Any:
        try:
            return await run_in_threadpool(func, api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            message = e.user_message or str(e) or "Stripe request failed"
            logger.error(
                f"Stripe error on {operation}: {message}",
                extra={"status_code": e.http_status}
            )
            raise StripeServiceError(message, status_code=e.http_status, stripe_code=e.code) from e

    async def create_customer(self, email: Optional[str], metadata: Dict[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {"metadata": metadata}
        if email:
            params["email"] = email
        return await self._call("customers.create", stripe.Customer.create, **params)

    async def create_payment_intent(
        self,
        params: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Creates a payment intent. When idempotency_key is given, Stripe
        returns the original intent for repeated requests with the same key.
        """
        params = {key: value for key, value in params.items() if value is not None}
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        return await self._call("payment_intents.create", stripe.PaymentIntent.create, **params)

    async def list_payment_methods(self, customer: str, type: str = "card", limit: int = 20) -> List[Dict[str, Any]]:
        methods = await self._call(
            "payment_methods.list",
            stripe.PaymentMethod.list,
            customer=customer,
            type=type,
            limit=limit,
        )
        return list(methods.data)


def construct_event(
    payload: bytes,
    sig_header: Optional[str],
    secret: Optional[str],
    tolerance: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Verifies a webhook delivery and returns the decoded event.

    Raises:
        WebhookSignatureError: secret unset, header missing, signature
            mismatch, timestamp outside tolerance, or body not a JSON event
    """
    if not secret:
        raise WebhookSignatureError("Missing webhook secret")
    if not sig_header:
        raise WebhookSignatureError("Missing stripe-signature header")

    if tolerance is None:
        tolerance = settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS

    try:
        event = stripe.Webhook.construct_event(payload, sig_header, secret, tolerance=tolerance)
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(str(e)) from e
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload: {e}") from e

    if "type" not in event:
        raise WebhookSignatureError("Invalid payload: not a Stripe event")

    return event


# Global service instance, built lazily from settings
_stripe_service: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    """Returns the process-wide Stripe client (FastAPI dependency)."""
    global _stripe_service
    if _stripe_service is None:
        _stripe_service = StripeService(secret_key=settings.STRIPE_SECRET)
    return _stripe_service
