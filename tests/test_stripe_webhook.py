import hashlib
import hmac
import json
import time

from utils.constants import PAYMENTS_COLLECTION, INVOICES_COLLECTION, USER_PAYMENTS_COLLECTION

WEBHOOK_SECRET = "whsec_test_secret"


def signed(event, secret=WEBHOOK_SECRET, timestamp=None):
    payload = json.dumps(event).encode("utf-8")
    timestamp = timestamp or int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    header = f"t={timestamp},v1={digest}"
    return payload, {"stripe-signature": header, "Content-Type": "application/json"}


def payment_intent_event(pi_id="pi_123", uid="uid_alice", **overrides):
    obj = {
        "id": pi_id,
        "object": "payment_intent",
        "amount": 2500,
        "amount_received": 2500,
        "currency": "usd",
        "created": 1700000000,
        "payment_method_types": ["card"],
        "charges": {"data": [{"receipt_url": "https://pay.stripe.com/receipts/r_1"}]},
        "metadata": {"firebaseUid": uid} if uid else {},
    }
    obj.update(overrides)
    return {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": obj}}


def test_payment_intent_succeeded_writes_both_copies(webhook_client, fake_db):
    payload, headers = signed(payment_intent_event())

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"received": True}

    record = fake_db[PAYMENTS_COLLECTION].docs["pi_123"]
    assert record["status"] == "succeeded"
    assert record["type"] == "payment_intent"
    assert record["amount"] == 2500
    assert record["receiptUrl"] == "https://pay.stripe.com/receipts/r_1"
    assert record["paymentMethod"] == "card"
    assert record["createdAt"].year == 2023

    user_record = fake_db[USER_PAYMENTS_COLLECTION].docs["uid_alice:pi_123"]
    assert user_record["stripeId"] == "pi_123"
    assert user_record["uid"] == "uid_alice"


def test_payment_intent_without_uid_skips_user_copy(webhook_client, fake_db):
    payload, headers = signed(payment_intent_event(uid=None))

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 200
    assert "pi_123" in fake_db[PAYMENTS_COLLECTION].docs
    assert fake_db[USER_PAYMENTS_COLLECTION].docs == {}


def test_repeated_delivery_is_idempotent_merge(webhook_client, fake_db):
    # An earlier write from create-payment-intent carries a field the webhook does not send
    fake_db[USER_PAYMENTS_COLLECTION].docs["uid_alice:pi_123"] = {
        "_id": "uid_alice:pi_123",
        "stripeId": "pi_123",
        "status": "requires_payment_method",
        "firebaseUid": "uid_alice",
    }

    payload, headers = signed(payment_intent_event(amount_received=2000))
    webhook_client.post("/", content=payload, headers=headers)
    payload, headers = signed(payment_intent_event(amount_received=2500))
    webhook_client.post("/", content=payload, headers=headers)

    assert list(fake_db[PAYMENTS_COLLECTION].docs) == ["pi_123"]
    assert list(fake_db[USER_PAYMENTS_COLLECTION].docs) == ["uid_alice:pi_123"]

    user_record = fake_db[USER_PAYMENTS_COLLECTION].docs["uid_alice:pi_123"]
    assert user_record["amount"] == 2500
    assert user_record["status"] == "succeeded"
    assert user_record["firebaseUid"] == "uid_alice"


def test_invoice_paid_writes_invoice_records(webhook_client, fake_db):
    event = {
        "id": "evt_2",
        "type": "invoice.paid",
        "data": {"object": {
            "id": "in_456",
            "amount_paid": 9900,
            "currency": "usd",
            "created": 1700000000,
            "invoice_pdf": None,
            "hosted_invoice_url": "https://invoice.stripe.com/i/in_456",
            "metadata": {"firebaseUid": "uid_bob"},
        }},
    }
    payload, headers = signed(event)

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 200
    record = fake_db[INVOICES_COLLECTION].docs["in_456"]
    assert record["status"] == "paid"
    assert record["type"] == "invoice"
    assert record["amount"] == 9900
    assert record["invoicePdf"] == "https://invoice.stripe.com/i/in_456"
    assert "uid_bob:in_456" in fake_db[USER_PAYMENTS_COLLECTION].docs


def test_unhandled_event_is_acknowledged(webhook_client, fake_db):
    payload, headers = signed({"id": "evt_3", "type": "customer.created", "data": {"object": {"id": "cus_1"}}})

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert fake_db.total_writes == 0


def test_invalid_signature_is_rejected_without_writes(webhook_client, fake_db):
    payload, headers = signed(payment_intent_event(), secret="whsec_wrong")

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 400
    assert fake_db.total_writes == 0


def test_missing_signature_is_rejected(webhook_client, fake_db):
    payload = json.dumps(payment_intent_event()).encode("utf-8")

    response = webhook_client.post("/", content=payload, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert fake_db.total_writes == 0


def test_tampered_body_is_rejected(webhook_client, fake_db):
    payload, headers = signed(payment_intent_event())
    tampered = payload.replace(b"2500", b"1")

    response = webhook_client.post("/", content=tampered, headers=headers)

    assert response.status_code == 400
    assert fake_db.total_writes == 0


def test_unconfigured_secret_rejects_everything(webhook_client, fake_db, test_settings):
    test_settings.STRIPE_WEBHOOK_SECRET = None
    payload, headers = signed(payment_intent_event())

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 400
    assert fake_db.total_writes == 0


def test_processing_failure_returns_empty_500(webhook_client, fake_db):
    async def broken_update_one(*args, **kwargs):
        raise RuntimeError("database unavailable")

    fake_db[PAYMENTS_COLLECTION].update_one = broken_update_one
    payload, headers = signed(payment_intent_event())

    response = webhook_client.post("/", content=payload, headers=headers)

    assert response.status_code == 500
    assert response.content == b""
