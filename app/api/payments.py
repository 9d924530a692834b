"""
app/api/payments.py

Purpose: Authenticated payment endpoints

- POST /create-payment-intent
- GET /payment-methods
- Requires a valid Firebase ID token (Authorization: Bearer ...)
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header

from app.api.deps import get_current_user
from app.core.logging import get_logger
from app.db.mongo import get_db
from app.schemas.auth import AuthenticatedUser
from app.schemas.payments import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    PaymentMethodsResponse,
)
from app.services import payment_service
from app.services.stripe_service import StripeService, get_stripe_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/create-payment-intent", response_model=CreatePaymentIntentResponse)
async def create_payment_intent(
    body: CreatePaymentIntentRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    user: AuthenticatedUser = Depends(get_current_user),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """
    Creates a Stripe payment intent for the caller and returns its client secret.

    Repeated calls create distinct intents unless the caller supplies an
    idempotency key (body field or Idempotency-Key header).
    """
    result = await payment_service.create_payment_intent(
        db, stripe, user, body, idempotency_key=idempotency_key
    )
    return CreatePaymentIntentResponse(**result)


@router.get("/payment-methods", response_model=PaymentMethodsResponse)
async def get_payment_methods(
    user: AuthenticatedUser = Depends(get_current_user),
    db=Depends(get_db),
    stripe: StripeService = Depends(get_stripe_service),
):
    """
    Lists the caller's saved cards. Empty when no Stripe customer exists yet.
    """
    methods = await payment_service.list_payment_methods(db, stripe, user)
    return PaymentMethodsResponse(paymentMethods=methods)
