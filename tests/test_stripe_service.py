import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

from app.core.exceptions import WebhookSignatureError
from app.services.stripe_service import StripeService, StripeServiceError, construct_event

SECRET = "whsec_unit"


def header_for(payload, timestamp=None, secret=SECRET):
    timestamp = timestamp or int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class Recorder:
    """Stands in for a stripe resource method and remembers its kwargs."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


# ============================================================
# WEBHOOK VERIFICATION
# ============================================================

def test_construct_event_accepts_valid_signature():
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "invoice.paid"}).encode()

    event = construct_event(payload, header_for(payload), SECRET, tolerance=300)

    assert event["type"] == "invoice.paid"
    assert event["id"] == "evt_1"


def test_construct_event_rejects_wrong_secret():
    payload = b'{"id": "evt_1", "type": "invoice.paid"}'

    with pytest.raises(WebhookSignatureError):
        construct_event(payload, header_for(payload, secret="whsec_other"), SECRET, tolerance=300)


@pytest.mark.parametrize("header", [None, "", "garbage", "t=1000"])
def test_construct_event_rejects_malformed_headers(header):
    with pytest.raises(WebhookSignatureError):
        construct_event(b"{}", header, SECRET, tolerance=300)


def test_construct_event_rejects_stale_timestamp():
    payload = b'{"id": "evt_1", "type": "invoice.paid"}'
    old = int(time.time()) - 1000

    with pytest.raises(WebhookSignatureError):
        construct_event(payload, header_for(payload, timestamp=old), SECRET, tolerance=300)


def test_construct_event_requires_secret():
    payload = b'{"id": "evt_1", "type": "invoice.paid"}'

    with pytest.raises(WebhookSignatureError, match="secret"):
        construct_event(payload, header_for(payload), None)


def test_construct_event_rejects_non_json_body():
    payload = b"not json"

    with pytest.raises(WebhookSignatureError, match="Invalid payload"):
        construct_event(payload, header_for(payload), SECRET, tolerance=300)


def test_construct_event_rejects_object_without_type():
    payload = b'{"id": "evt_1"}'

    with pytest.raises(WebhookSignatureError, match="not a Stripe event"):
        construct_event(payload, header_for(payload), SECRET, tolerance=300)


def test_signature_error_maps_to_400():
    err = WebhookSignatureError()
    assert err.status_code == 400
    assert err.code == "WEBHOOK_SIGNATURE_ERROR"


# ============================================================
# API CALLS
# ============================================================

def test_missing_secret_uses_dummy_key():
    service = StripeService(secret_key=None)
    assert service.secret_key == "sk_test_dummy"
    assert not service.is_configured


@pytest.mark.asyncio
async def test_create_payment_intent_passes_key_and_idempotency(monkeypatch):
    create = Recorder(result={"id": "pi_1", "client_secret": "pi_1_secret_x"})
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    service = StripeService("sk_test_123")
    intent = await service.create_payment_intent(
        {"amount": 2500, "currency": "usd", "receipt_email": None, "metadata": {"firebaseUid": "u1"}},
        idempotency_key="key-1",
    )

    assert intent["id"] == "pi_1"
    (call,) = create.calls
    assert call["api_key"] == "sk_test_123"
    assert call["idempotency_key"] == "key-1"
    assert call["amount"] == 2500
    assert call["metadata"] == {"firebaseUid": "u1"}
    assert "receipt_email" not in call


@pytest.mark.asyncio
async def test_create_payment_intent_without_idempotency_key(monkeypatch):
    create = Recorder(result={"id": "pi_2"})
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    await StripeService("sk_test_123").create_payment_intent({"amount": 2500, "currency": "usd"})

    assert "idempotency_key" not in create.calls[0]


@pytest.mark.asyncio
async def test_create_customer_tags_uid(monkeypatch):
    create = Recorder(result={"id": "cus_1"})
    monkeypatch.setattr(stripe.Customer, "create", create)

    customer = await StripeService("sk_test_123").create_customer("a@example.com", {"firebaseUid": "u1"})

    assert customer["id"] == "cus_1"
    assert create.calls == [{"api_key": "sk_test_123", "email": "a@example.com", "metadata": {"firebaseUid": "u1"}}]


@pytest.mark.asyncio
async def test_list_payment_methods_returns_data(monkeypatch):
    listing = SimpleNamespace(data=[{"id": "pm_1", "type": "card"}])
    list_methods = Recorder(result=listing)
    monkeypatch.setattr(stripe.PaymentMethod, "list", list_methods)

    methods = await StripeService("sk_test_123").list_payment_methods("cus_1")

    assert [m["id"] for m in methods] == ["pm_1"]
    call = list_methods.calls[0]
    assert (call["customer"], call["type"], call["limit"]) == ("cus_1", "card", 20)


@pytest.mark.asyncio
async def test_stripe_error_is_raised_with_message(monkeypatch):
    declined = stripe.CardError("Your card was declined.", None, "card_declined", http_status=402)
    monkeypatch.setattr(stripe.Customer, "create", Recorder(error=declined))

    with pytest.raises(StripeServiceError) as exc_info:
        await StripeService("sk_test_123").create_customer("a@example.com", {"firebaseUid": "u1"})

    assert exc_info.value.status_code == 402
    assert exc_info.value.stripe_code == "card_declined"
    assert "declined" in exc_info.value.message
