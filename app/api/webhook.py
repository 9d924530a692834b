"""
app/api/webhook.py

Purpose: Stripe webhook endpoint

- Reads the raw body (signature covers the exact bytes)
- Verifies the stripe-signature header against STRIPE_WEBHOOK_SECRET
- Nothing is written unless verification passes
- Persists payment_intent.succeeded and invoice.paid, acknowledges the rest
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import Response

from app.core.config import Settings, get_settings
from app.core.logging import get_logger
from app.db.mongo import get_db
from app.schemas.response import WebhookAck
from app.services.payment_service import handle_stripe_event
from app.services.stripe_service import construct_event
from utils.constants import STRIPE_SIGNATURE_HEADER

logger = get_logger(__name__)
router = APIRouter()


@router.post("/", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias=STRIPE_SIGNATURE_HEADER),
    settings: Settings = Depends(get_settings),
    db=Depends(get_db),
):
    """
    Stripe webhook receiver.

    Returns 400 when the signature cannot be verified, 200 {"received": true}
    once the event is handled or ignored, and an empty 500 when persisting a
    verified event fails (Stripe will retry the delivery).
    """
    payload = await request.body()

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Missing STRIPE_WEBHOOK_SECRET; cannot verify signature")

    # WebhookSignatureError is rendered as 400 by the exception handlers
    event = construct_event(
        payload,
        stripe_signature,
        settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )

    try:
        await handle_stripe_event(db, event)
    except Exception as e:
        logger.error(
            f"Webhook handling error: {e}",
            extra={"event_type": event.get("type")},
            exc_info=True
        )
        return Response(status_code=500)

    return WebhookAck(received=True)
