"""Payment intent controllers.

Each handler runs the same pipeline: read input, validate, call the provider,
map the result onto the response envelope. A stage returning `Err` ends the
pipeline with that error's response.
"""

import json

from fastapi import Request
from fastapi.responses import JSONResponse

from paygate.common.logging import logger, payment_intent_id_ctx
from paygate.common.metrics import webhook_events_total
from paygate.common.result import Err, Ok, Result
from paygate.services.payments.provider import GENERIC_ERROR_MESSAGE, PaymentProvider
from paygate.services.payments.schemas import PaymentError, PaymentIntent, WebhookEvent
from paygate.services.payments.validation import (
    validate_confirm_payment,
    validate_create_payment_intent,
    validate_payment_intent_id,
)


SIGNATURE_HEADER = "stripe-signature"
BODY_TOO_LARGE = "Request body too large"


def success_response(data: PaymentIntent, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data.model_dump()}, status_code=status_code)


def error_response(error: PaymentError) -> JSONResponse:
    return JSONResponse({"success": False, "error": error.to_body()}, status_code=error.status_code)


def internal_error_response() -> JSONResponse:
    return error_response(PaymentError(message=GENERIC_ERROR_MESSAGE, status_code=500))


async def read_body(request: Request, limit_bytes: int) -> Result[bytes, PaymentError]:
    """Read the raw body, giving up as soon as it passes `limit_bytes`."""

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit_bytes:
        return Err(PaymentError(message=BODY_TOO_LARGE, status_code=413))
    chunks = bytearray()
    async for chunk in request.stream():
        chunks.extend(chunk)
        if len(chunks) > limit_bytes:
            logger.warning("body_too_large path=%s limit=%s", request.url.path, limit_bytes)
            return Err(PaymentError(message=BODY_TOO_LARGE, status_code=413))
    return Ok(bytes(chunks))


async def read_json_body(request: Request, limit_bytes: int) -> Result[object, PaymentError]:
    """Read and parse a JSON body, enforcing the size ceiling.

    An empty body parses as an empty object.
    """

    raw = await read_body(request, limit_bytes)
    if isinstance(raw, Err):
        return raw
    if not raw.value.strip():
        return Ok({})
    try:
        return Ok(json.loads(raw.value))
    except ValueError:
        logger.warning("invalid_json_body path=%s", request.url.path)
        return Err(PaymentError(message="Invalid JSON body", status_code=400))


class PaymentController:
    """HTTP-facing orchestration over a `PaymentProvider`."""

    def __init__(
        self,
        provider: PaymentProvider,
        json_body_limit_bytes: int,
        webhook_body_limit_bytes: int,
        service_name: str = "payment-service",
    ) -> None:
        self.provider = provider
        self.json_body_limit_bytes = json_body_limit_bytes
        self.webhook_body_limit_bytes = webhook_body_limit_bytes
        self.service_name = service_name

    @staticmethod
    def _respond(result: Result[PaymentIntent, PaymentError], success_status: int = 200) -> JSONResponse:
        if isinstance(result, Ok):
            return success_response(result.value, success_status)
        return error_response(result.error)

    async def create_payment_intent(self, request: Request) -> JSONResponse:
        try:
            body = await read_json_body(request, self.json_body_limit_bytes)
            if isinstance(body, Err):
                return error_response(body.error)
            validated = validate_create_payment_intent(body.value)
            if isinstance(validated, Err):
                return error_response(validated.error)

            req = validated.value
            logger.info("creating payment intent amount=%s currency=%s", req.amount, req.currency)
            result = await self.provider.create(req)
            if isinstance(result, Ok):
                payment_intent_id_ctx.set(result.value.id)
            return self._respond(result, success_status=201)
        except Exception:
            logger.exception("unexpected error in create_payment_intent")
            return internal_error_response()

    async def get_payment_intent(self, payment_intent_id: str) -> JSONResponse:
        try:
            validated = validate_payment_intent_id(payment_intent_id)
            if isinstance(validated, Err):
                return error_response(validated.error)

            payment_intent_id_ctx.set(validated.value)
            logger.info("retrieving payment intent payment_intent_id=%s", validated.value)
            return self._respond(await self.provider.retrieve(validated.value))
        except Exception:
            logger.exception("unexpected error in get_payment_intent")
            return internal_error_response()

    async def confirm_payment(self, payment_intent_id: str, request: Request) -> JSONResponse:
        try:
            body = await read_json_body(request, self.json_body_limit_bytes)
            if isinstance(body, Err):
                return error_response(body.error)
            validated = validate_confirm_payment(payment_intent_id, body.value)
            if isinstance(validated, Err):
                return error_response(validated.error)

            req = validated.value
            payment_intent_id_ctx.set(req.payment_intent_id)
            logger.info(
                "confirming payment intent payment_intent_id=%s payment_method_id=%s",
                req.payment_intent_id,
                req.payment_method_id,
            )
            return self._respond(await self.provider.confirm(req.payment_intent_id, req.payment_method_id))
        except Exception:
            logger.exception("unexpected error in confirm_payment")
            return internal_error_response()

    async def cancel_payment(self, payment_intent_id: str) -> JSONResponse:
        try:
            validated = validate_payment_intent_id(payment_intent_id)
            if isinstance(validated, Err):
                return error_response(validated.error)

            payment_intent_id_ctx.set(validated.value)
            logger.info("cancelling payment intent payment_intent_id=%s", validated.value)
            return self._respond(await self.provider.cancel(validated.value))
        except Exception:
            logger.exception("unexpected error in cancel_payment")
            return internal_error_response()

    async def handle_webhook(self, request: Request) -> JSONResponse:
        """Verify and log a provider notification. No other side effects.

        The body stays raw bytes: the signature covers the exact payload.
        """

        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            logger.warning("webhook signature missing")
            return JSONResponse({"error": "Missing signature"}, status_code=400)
        raw_payload = await read_body(request, self.webhook_body_limit_bytes)
        if isinstance(raw_payload, Err):
            return JSONResponse({"error": raw_payload.error.message}, status_code=413)
        try:
            verified = self.provider.verify_webhook_signature(raw_payload.value, signature)
            if isinstance(verified, Err):
                return JSONResponse({"error": verified.error.message}, status_code=400)
            self._log_event(verified.value)
            return JSONResponse({"received": True})
        except Exception:
            logger.exception("webhook error")
            return JSONResponse({"error": "Webhook signature verification failed"}, status_code=400)

    def _log_event(self, event: WebhookEvent) -> None:
        logger.info("webhook event received type=%s id=%s", event.type, event.id)
        webhook_events_total.labels(service=self.service_name, event_type=event.type).inc()
        if event.type == "payment_intent.succeeded":
            logger.info("payment succeeded payment_intent_id=%s", event.object_id)
        elif event.type == "payment_intent.payment_failed":
            logger.warning("payment failed payment_intent_id=%s", event.object_id)
        elif event.type == "payment_intent.canceled":
            logger.info("payment canceled payment_intent_id=%s", event.object_id)
        else:
            logger.info("unhandled event type type=%s", event.type)
