"""
Pytest configuration and fixtures

- In-memory stand-in for the Motor database ($set upserts only)
- Fake Stripe client recording every call
- FastAPI apps wired with dependency overrides
"""

import copy
import itertools
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_token_verifier
from app.core.config import Settings, get_settings
from app.core.exceptions import AuthError
from app.db.mongo import get_db
from app.main import app, webhook_app
from app.schemas.auth import AuthenticatedUser
from app.services.stripe_service import get_stripe_service

WEBHOOK_SECRET = "whsec_test_secret"
HOOK_SECRET = "hook-secret"

TOKENS = {
    "token-alice": AuthenticatedUser(uid="uid_alice", email="alice@example.com"),
    "token-bob": AuthenticatedUser(uid="uid_bob", email="bob@example.com"),
}


class FakeUpdateResult:
    def __init__(self, matched_count, upserted_id=None):
        self.matched_count = matched_count
        self.modified_count = matched_count
        self.upserted_id = upserted_id


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = {}
        self.write_count = 0

    async def find_one(self, filter):
        doc = self.docs.get(filter.get("_id"))
        return copy.deepcopy(doc) if doc is not None else None

    async def update_one(self, filter, update, upsert=False):
        key = filter["_id"]
        doc = self.docs.get(key)
        upserted_id = None
        if doc is None:
            if not upsert:
                return FakeUpdateResult(0)
            doc = {"_id": key}
            self.docs[key] = doc
            upserted_id = key
        for field, value in update.get("$set", {}).items():
            doc[field] = copy.deepcopy(value)
        self.write_count += 1
        return FakeUpdateResult(0 if upserted_id else 1, upserted_id)

    async def create_index(self, *args, **kwargs):
        return kwargs.get("name", "idx")


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    @property
    def total_writes(self):
        return sum(c.write_count for c in self.collections.values())


class FakeStripe:
    is_configured = True

    def __init__(self):
        self.calls = []
        self.payment_methods = []
        self._ids = itertools.count(1)

    async def create_customer(self, email, metadata):
        self.calls.append(("create_customer", {"email": email, "metadata": metadata}))
        return {"id": f"cus_test_{next(self._ids)}", "email": email, "metadata": metadata}

    async def create_payment_intent(self, params, idempotency_key=None):
        self.calls.append(("create_payment_intent", {"params": params, "idempotency_key": idempotency_key}))
        pi_id = f"pi_test_{next(self._ids)}"
        return {
            "id": pi_id,
            "object": "payment_intent",
            "client_secret": f"{pi_id}_secret_abc",
            "amount": params["amount"],
            "currency": params["currency"],
            "customer": params["customer"],
            "status": "requires_payment_method",
            "created": 1700000000,
            "metadata": params["metadata"],
        }

    async def list_payment_methods(self, customer, type="card", limit=20):
        self.calls.append(("list_payment_methods", {"customer": customer, "type": type, "limit": limit}))
        return self.payment_methods

    def called(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]


async def fake_verify(token):
    user = TOKENS.get(token)
    if user is None:
        raise AuthError("Invalid token")
    return user


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fake_stripe():
    return FakeStripe()


@pytest.fixture
def test_settings():
    return Settings(STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET, AUTH_HOOK_SECRET=HOOK_SECRET)


def _override(application, fake_db, fake_stripe, test_settings):
    application.dependency_overrides[get_db] = lambda: fake_db
    application.dependency_overrides[get_stripe_service] = lambda: fake_stripe
    application.dependency_overrides[get_token_verifier] = lambda: fake_verify
    application.dependency_overrides[get_settings] = lambda: test_settings


@pytest.fixture
def client(fake_db, fake_stripe, test_settings):
    _override(app, fake_db, fake_stripe, test_settings)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def webhook_client(fake_db, fake_stripe, test_settings):
    _override(webhook_app, fake_db, fake_stripe, test_settings)
    yield TestClient(webhook_app)
    webhook_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer token-alice"}
