"""Payment provider adapter.

Wraps the Stripe SDK behind a small interface whose calls return `Ok`/`Err`
values instead of raising. Provider exceptions are caught here and nowhere
else; anything that is not a provider error propagates to the caller.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import stripe

from paygate.common.logging import logger
from paygate.common.metrics import provider_calls_total
from paygate.common.result import Err, Ok, Result
from paygate.services.payments.schemas import (
    PaymentError,
    PaymentIntent,
    PaymentIntentCreateRequest,
    SignatureError,
    WebhookEvent,
)


GENERIC_ERROR_MESSAGE = "Internal server error"


class PaymentProvider(ABC):
    """Operations the HTTP layer needs from a payment provider."""

    @abstractmethod
    async def create(self, request: PaymentIntentCreateRequest) -> Result[PaymentIntent, PaymentError]:
        ...

    @abstractmethod
    async def retrieve(self, payment_intent_id: str) -> Result[PaymentIntent, PaymentError]:
        ...

    @abstractmethod
    async def confirm(self, payment_intent_id: str, payment_method_id: str) -> Result[PaymentIntent, PaymentError]:
        ...

    @abstractmethod
    async def cancel(self, payment_intent_id: str) -> Result[PaymentIntent, PaymentError]:
        ...

    @abstractmethod
    def verify_webhook_signature(self, raw_payload: bytes, signature: str) -> Result[WebhookEvent, SignatureError]:
        """Verify `signature` over the exact received bytes, then parse them."""


def to_payment_intent(obj: Any) -> PaymentIntent:
    """Project a provider intent object onto the relayed snapshot."""

    return PaymentIntent(
        id=obj["id"],
        amount=obj["amount"],
        currency=obj["currency"],
        status=obj["status"],
        client_secret=obj.get("client_secret"),
        created=obj["created"],
    )


def to_payment_error(exc: stripe.StripeError) -> PaymentError:
    """Map a provider exception to the normalized error shape.

    Errors without an HTTP status never reached the provider's API (network,
    local auth config) and get a generic message instead of the raw text.
    """

    if exc.http_status is None:
        return PaymentError(message=GENERIC_ERROR_MESSAGE, code=exc.code, status_code=500)
    return PaymentError(
        message=exc.user_message or GENERIC_ERROR_MESSAGE,
        code=exc.code,
        status_code=exc.http_status,
    )


class StripeProvider(PaymentProvider):
    """Stripe-backed provider using the SDK's async HTTPX transport."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        webhook_tolerance_seconds: int = 300,
        client: stripe.StripeClient | None = None,
        service_name: str = "payment-service",
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._tolerance = webhook_tolerance_seconds
        self._client = client
        self.service_name = service_name

    @property
    def client(self) -> stripe.StripeClient:
        # Built on first use so a missing key fails the call, not startup.
        if self._client is None:
            self._client = stripe.StripeClient(
                self._secret_key,
                http_client=stripe.HTTPXClient(),
                max_network_retries=0,
            )
        return self._client

    async def _call(self, operation: str, payment_intent_id: str | None, fn) -> Result[PaymentIntent, PaymentError]:
        try:
            intent = await fn()
        except stripe.StripeError as exc:
            error = to_payment_error(exc)
            logger.error(
                "provider_call_failed operation=%s payment_intent_id=%s status=%s code=%s error=%s",
                operation,
                payment_intent_id,
                exc.http_status,
                exc.code,
                exc.user_message,
            )
            provider_calls_total.labels(
                service=self.service_name, operation=operation, outcome="error"
            ).inc()
            return Err(error)

        snapshot = to_payment_intent(intent)
        logger.info(
            "provider_call_succeeded operation=%s payment_intent_id=%s status=%s amount=%s",
            operation,
            snapshot.id,
            snapshot.status,
            snapshot.amount,
        )
        provider_calls_total.labels(service=self.service_name, operation=operation, outcome="ok").inc()
        return Ok(snapshot)

    async def create(self, request: PaymentIntentCreateRequest) -> Result[PaymentIntent, PaymentError]:
        params = request.model_dump(exclude_none=True)
        return await self._call(
            "create",
            None,
            lambda: self.client.payment_intents.create_async(params=params),
        )

    async def retrieve(self, payment_intent_id: str) -> Result[PaymentIntent, PaymentError]:
        return await self._call(
            "retrieve",
            payment_intent_id,
            lambda: self.client.payment_intents.retrieve_async(payment_intent_id),
        )

    async def confirm(self, payment_intent_id: str, payment_method_id: str) -> Result[PaymentIntent, PaymentError]:
        return await self._call(
            "confirm",
            payment_intent_id,
            lambda: self.client.payment_intents.confirm_async(
                payment_intent_id, params={"payment_method": payment_method_id}
            ),
        )

    async def cancel(self, payment_intent_id: str) -> Result[PaymentIntent, PaymentError]:
        return await self._call(
            "cancel",
            payment_intent_id,
            lambda: self.client.payment_intents.cancel_async(payment_intent_id),
        )

    def verify_webhook_signature(self, raw_payload: bytes, signature: str) -> Result[WebhookEvent, SignatureError]:
        try:
            payload = raw_payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(payload, signature, self._webhook_secret, self._tolerance)
            event = WebhookEvent.model_validate(json.loads(payload))
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("webhook_verification_failed reason=%s", type(exc).__name__)
            return Err(SignatureError())
        return Ok(event)
