"""Shared pytest fixtures: an in-memory provider and an app wired around it."""

import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient

from paygate.common.config import Settings
from paygate.common.ratelimit import FixedWindowRateLimiter
from paygate.common.result import Err, Ok
from paygate.services.payments.main import create_app
from paygate.services.payments.provider import PaymentProvider, StripeProvider
from paygate.services.payments.schemas import PaymentError, PaymentIntent


WEBHOOK_SECRET = "whsec_test_secret"
TERMINAL_STATUSES = {"succeeded", "canceled"}


class FakeProvider(PaymentProvider):
    """Provider double keeping intents in a dict.

    Webhook verification delegates to the real Stripe signature check so the
    HTTP tests exercise actual HMAC handling.
    """

    def __init__(self, webhook_secret: str = WEBHOOK_SECRET) -> None:
        self.intents: dict[str, PaymentIntent] = {}
        self.calls: list[tuple] = []
        self.raise_on_next: Exception | None = None
        self._verifier = StripeProvider("", webhook_secret)

    def _maybe_raise(self) -> None:
        if self.raise_on_next is not None:
            exc, self.raise_on_next = self.raise_on_next, None
            raise exc

    def _missing(self, payment_intent_id: str) -> Err[PaymentError]:
        return Err(
            PaymentError(
                message=f"No such payment_intent: '{payment_intent_id}'",
                code="resource_missing",
                status_code=404,
            )
        )

    def _unexpected_state(self, intent: PaymentIntent, action: str) -> Err[PaymentError]:
        return Err(
            PaymentError(
                message=f"You cannot {action} this PaymentIntent because it has a status of {intent.status}.",
                code="payment_intent_unexpected_state",
                status_code=400,
            )
        )

    async def create(self, request):
        self.calls.append(("create", request.model_dump()))
        self._maybe_raise()
        intent_id = f"pi_{len(self.intents) + 1:04d}"
        intent = PaymentIntent(
            id=intent_id,
            amount=request.amount,
            currency=request.currency.lower(),
            status="requires_payment_method",
            client_secret=f"{intent_id}_secret_abc",
            created=1_700_000_000,
        )
        self.intents[intent_id] = intent
        return Ok(intent)

    async def retrieve(self, payment_intent_id):
        self.calls.append(("retrieve", payment_intent_id))
        self._maybe_raise()
        if payment_intent_id not in self.intents:
            return self._missing(payment_intent_id)
        return Ok(self.intents[payment_intent_id])

    async def confirm(self, payment_intent_id, payment_method_id):
        self.calls.append(("confirm", payment_intent_id, payment_method_id))
        self._maybe_raise()
        intent = self.intents.get(payment_intent_id)
        if intent is None:
            return self._missing(payment_intent_id)
        if intent.status in TERMINAL_STATUSES:
            return self._unexpected_state(intent, "confirm")
        intent = intent.model_copy(update={"status": "succeeded"})
        self.intents[payment_intent_id] = intent
        return Ok(intent)

    async def cancel(self, payment_intent_id):
        self.calls.append(("cancel", payment_intent_id))
        self._maybe_raise()
        intent = self.intents.get(payment_intent_id)
        if intent is None:
            return self._missing(payment_intent_id)
        if intent.status in TERMINAL_STATUSES:
            return self._unexpected_state(intent, "cancel")
        intent = intent.model_copy(update={"status": "canceled"})
        self.intents[payment_intent_id] = intent
        return Ok(intent)

    def verify_webhook_signature(self, raw_payload, signature):
        self.calls.append(("verify", signature))
        return self._verifier.verify_webhook_signature(raw_payload, signature)


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a provider-style `t=...,v1=...` signature header."""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def make_event(event_type: str = "payment_intent.succeeded", intent_id: str = "pi_0001") -> bytes:
    return json.dumps(
        {
            "id": "evt_123",
            "object": "event",
            "type": event_type,
            "created": 1_700_000_100,
            "data": {"object": {"id": intent_id, "object": "payment_intent"}},
        }
    ).encode("utf-8")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        stripe_secret_key="sk_test_dummy",
        stripe_webhook_secret=WEBHOOK_SECRET,
        cors_origin="http://localhost:3000",
        rate_limit_max_requests=1000,
        json_body_limit_bytes=4096,
        webhook_body_limit_bytes=2048,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def app(test_settings, provider):
    return create_app(test_settings, provider=provider)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def valid_create_body() -> dict:
    return {
        "amount": 2000,
        "currency": "usd",
        "payment_method_types": ["card"],
        "metadata": {"order_id": "ord_42"},
        "description": "Test order",
    }


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limited_app(test_settings, provider, clock):
    limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)
    return create_app(test_settings, provider=provider, rate_limiter=limiter)
