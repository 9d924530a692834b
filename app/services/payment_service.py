"""
app/services/payment_service.py

Purpose: Payment intents, saved cards and webhook persistence

- Validates and creates payment intents for an authenticated user
- Lists the user's saved card payment methods
- Mirrors succeeded payment intents and paid invoices into MongoDB
- Payment records are keyed by their Stripe id and always merged, so
  repeated webhook deliveries are idempotent
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, List

from app.core.config import settings
from app.core.exceptions import ArgumentError, UpstreamError
from app.core.logging import get_logger, LogContext
from app.schemas.auth import AuthenticatedUser
from app.schemas.payments import CreatePaymentIntentRequest, PaymentMethodSummary
from app.services.stripe_service import StripeService, StripeServiceError
from app.services.user_service import ensure_customer, get_stripe_customer_id
from utils.constants import (
    PAYMENTS_COLLECTION,
    INVOICES_COLLECTION,
    USER_PAYMENTS_COLLECTION,
    FIREBASE_UID_METADATA_KEY,
    RECORD_TYPE_PAYMENT_INTENT,
    RECORD_TYPE_INVOICE,
    EVENT_PAYMENT_INTENT_SUCCEEDED,
    EVENT_INVOICE_PAID,
    STATUS_SUCCEEDED,
    STATUS_PAID,
)

logger = get_logger(__name__)


def round_amount(amount: float) -> int:
    """Rounds to whole minor units, halves away from zero."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def user_payment_key(uid: str, stripe_id: str) -> str:
    return f"{uid}:{stripe_id}"


def from_unix(created: Optional[int]) -> datetime:
    if created is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(created, tz=timezone.utc)


async def merge_document(collection, key: str, fields: Dict[str, Any]):
    """Upserts fields into the document with _id=key; other fields survive."""
    await collection.update_one({"_id": key}, {"$set": fields}, upsert=True)


async def merge_user_payment(db, uid: str, record: Dict[str, Any]):
    """Writes the users/{uid}/payments/{stripeId} copy of a payment record."""
    await merge_document(
        db[USER_PAYMENTS_COLLECTION],
        user_payment_key(uid, record["stripeId"]),
        {**record, "uid": uid},
    )


# ============================================================
# PAYMENT INTENTS
# ============================================================

async def create_payment_intent(
    db,
    stripe: StripeService,
    user: AuthenticatedUser,
    request: CreatePaymentIntentRequest,
    idempotency_key: Optional[str] = None,
) -> Dict[str, str]:
    """
    Creates a card payment intent for the caller.

    The amount is validated before any Stripe or database call. The
    resulting intent is persisted under users/{uid}/payments.

    Raises:
        ArgumentError: amount not finite or below MIN_PAYMENT_AMOUNT
        UpstreamError: Stripe failure
    """
    with LogContext(uid=user.uid):
        amount = request.amount
        if (isinstance(amount, float) and not math.isfinite(amount)) or amount < settings.MIN_PAYMENT_AMOUNT:
            raise ArgumentError(
                "Invalid amount",
                details={"minimum": settings.MIN_PAYMENT_AMOUNT}
            )

        currency = (request.currency or settings.DEFAULT_CURRENCY).lower()
        idempotency_key = request.idempotencyKey or idempotency_key

        try:
            customer_id = request.customerId or await ensure_customer(db, stripe, user.uid, user.email)

            intent = await stripe.create_payment_intent(
                {
                    "amount": round_amount(request.amount),
                    "currency": currency,
                    "customer": customer_id,
                    "payment_method_types": ["card"],
                    "description": settings.PAYMENT_DESCRIPTION,
                    "receipt_email": user.email,
                    "metadata": {
                        **request.metadata,
                        FIREBASE_UID_METADATA_KEY: user.uid,
                    },
                    "confirmation_method": "automatic",
                    "confirm": False,
                },
                idempotency_key=idempotency_key,
            )
        except StripeServiceError as e:
            raise UpstreamError(e.message, details={"stripe_code": e.stripe_code}) from e

        await merge_user_payment(db, user.uid, {
            "stripeId": intent["id"],
            "amount": intent.get("amount"),
            "currency": intent.get("currency"),
            "status": intent.get("status"),
            "type": RECORD_TYPE_PAYMENT_INTENT,
            "createdAt": from_unix(intent.get("created")),
            "metadata": intent.get("metadata") or {},
            "firebaseUid": user.uid,
        })

        logger.info(
            f"Payment intent {intent['id']} created",
            extra={"stripe_id": intent["id"]}
        )

        return {
            "clientSecret": intent["client_secret"],
            "paymentIntentId": intent["id"],
        }


async def list_payment_methods(db, stripe: StripeService, user: AuthenticatedUser) -> List[PaymentMethodSummary]:
    """
    Returns the caller's saved cards. Users without a Stripe customer get
    an empty list and Stripe is not called.
    """
    customer_id = await get_stripe_customer_id(db, user.uid)
    if not customer_id:
        return []

    try:
        methods = await stripe.list_payment_methods(
            customer=customer_id,
            type="card",
            limit=settings.PAYMENT_METHODS_LIMIT,
        )
    except StripeServiceError as e:
        raise UpstreamError(e.message, details={"stripe_code": e.stripe_code}) from e

    summaries = []
    for pm in methods:
        card = pm.get("card") or {}
        summaries.append(PaymentMethodSummary(
            id=pm["id"],
            brand=card.get("brand"),
            last4=card.get("last4"),
            exp_month=card.get("exp_month"),
            exp_year=card.get("exp_year"),
            type=pm.get("type"),
        ))
    return summaries


# ============================================================
# WEBHOOK EVENTS
# ============================================================

def _first_receipt_url(payment_intent: Dict[str, Any]) -> Optional[str]:
    charges = (payment_intent.get("charges") or {}).get("data") or []
    if charges:
        return charges[0].get("receipt_url")
    latest_charge = payment_intent.get("latest_charge")
    if isinstance(latest_charge, dict):
        return latest_charge.get("receipt_url")
    return None


async def record_payment_intent_succeeded(db, payment_intent: Dict[str, Any]) -> Dict[str, Any]:
    metadata = payment_intent.get("metadata") or {}
    uid = metadata.get(FIREBASE_UID_METADATA_KEY)
    method_types = payment_intent.get("payment_method_types") or []

    record = {
        "stripeId": payment_intent["id"],
        "amount": payment_intent.get("amount_received") or payment_intent.get("amount"),
        "currency": payment_intent.get("currency"),
        "status": STATUS_SUCCEEDED,
        "type": RECORD_TYPE_PAYMENT_INTENT,
        "createdAt": from_unix(payment_intent.get("created")),
        "receiptUrl": _first_receipt_url(payment_intent),
        "paymentMethod": method_types[0] if method_types else None,
        "metadata": metadata,
    }

    await merge_document(db[PAYMENTS_COLLECTION], record["stripeId"], record)
    if uid:
        await merge_user_payment(db, uid, record)
    else:
        logger.warning("Payment intent has no firebaseUid; user copy skipped")

    return record


async def record_invoice_paid(db, invoice: Dict[str, Any]) -> Dict[str, Any]:
    metadata = invoice.get("metadata") or {}
    uid = metadata.get(FIREBASE_UID_METADATA_KEY)

    record = {
        "stripeId": invoice["id"],
        "amount": invoice.get("amount_paid"),
        "currency": invoice.get("currency"),
        "status": STATUS_PAID,
        "type": RECORD_TYPE_INVOICE,
        "createdAt": from_unix(invoice.get("created")),
        "invoicePdf": invoice.get("invoice_pdf") or invoice.get("hosted_invoice_url"),
        "metadata": metadata,
    }

    await merge_document(db[INVOICES_COLLECTION], record["stripeId"], record)
    if uid:
        await merge_user_payment(db, uid, record)
    else:
        logger.warning("Invoice has no firebaseUid; user copy skipped")

    return record


EVENT_HANDLERS = {
    EVENT_PAYMENT_INTENT_SUCCEEDED: record_payment_intent_succeeded,
    EVENT_INVOICE_PAID: record_invoice_paid,
}


async def handle_stripe_event(db, event: Dict[str, Any]) -> bool:
    """
    Routes a verified Stripe event to its persistence handler.

    Returns:
        True if the event type was handled, False if it was ignored
    """
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)

    with LogContext(event_type=event_type):
        if handler is None:
            logger.debug("Ignoring unhandled Stripe event")
            return False

        obj = (event.get("data") or {}).get("object") or {}
        record = await handler(db, obj)
        logger.info(
            "Stripe event recorded",
            extra={"stripe_id": record["stripeId"]}
        )
        return True
