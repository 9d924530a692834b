"""
app/schemas/payments.py

Purpose: Payment API request/response schemas

- Validates create-payment-intent input (strict, finite amount; flat metadata)
- Shapes payment intent and saved payment method responses
- Field names follow the mobile client's camelCase contract
"""

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr, confloat
from typing import Optional, Dict, List, Union

# JSON allows NaN and Infinity literals; neither is an amount
FiniteFloat = confloat(strict=True, allow_inf_nan=False)

# Stripe metadata is a flat map of short scalar values
MetadataValue = Union[StrictStr, StrictInt, FiniteFloat, StrictBool]


class CreatePaymentIntentRequest(BaseModel):
    """
    Body of POST /create-payment-intent.
    Amount is in currency minor units (e.g. cents).
    """
    amount: Union[StrictInt, FiniteFloat] = Field(..., description="Amount in minor units")
    currency: Optional[str] = Field(default=None, description="ISO currency code, defaults to usd")
    customerId: Optional[str] = Field(default=None, description="Existing Stripe customer to charge")
    metadata: Dict[str, MetadataValue] = Field(default_factory=dict, description="Extra flat metadata for the intent")
    idempotencyKey: Optional[str] = Field(default=None, description="Forwarded to Stripe as Idempotency-Key")

    class Config:
        json_schema_extra = {
            "example": {
                "amount": 2500,
                "currency": "usd",
                "metadata": {"bookingId": "bk_123"}
            }
        }


class CreatePaymentIntentResponse(BaseModel):
    clientSecret: str
    paymentIntentId: str


class PaymentMethodSummary(BaseModel):
    """
    Card details safe to show in the client (never the PAN).
    """
    id: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None
    type: Optional[str] = None


class PaymentMethodsResponse(BaseModel):
    paymentMethods: List[PaymentMethodSummary] = Field(default_factory=list)
