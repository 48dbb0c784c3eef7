"""Request validators for payment intent routes.

Each validator takes already-read request input and returns `Ok(validated)`
to continue, or `Err(PaymentError)` with status 400 carrying the message of
the first rule that failed.
"""

from typing import Any

from pydantic import BaseModel, ValidationError

from paygate.common.logging import logger
from paygate.common.result import Err, Ok, Result
from paygate.services.payments.schemas import (
    ConfirmPaymentRequest,
    PaymentError,
    PaymentIntentCreateRequest,
)


def _first_error_message(exc: ValidationError, aliases: dict[str, str] | None = None) -> str:
    error = exc.errors()[0]
    loc = ".".join(str(part) for part in error["loc"])
    if aliases:
        loc = aliases.get(loc, loc)
    if not loc:
        return error["msg"]
    return f'"{loc}" {error["msg"][0].lower()}{error["msg"][1:]}'


def _rejected(message: str) -> Err[PaymentError]:
    return Err(PaymentError(message=message, status_code=400))


def _parse(model: type[BaseModel], data: Any, operation: str, aliases: dict[str, str] | None = None):
    try:
        return Ok(model.model_validate(data))
    except ValidationError as exc:
        message = _first_error_message(exc, aliases)
        logger.warning("validation_failed operation=%s error=%s", operation, message)
        return _rejected(message)


def validate_create_payment_intent(body: Any) -> Result[PaymentIntentCreateRequest, PaymentError]:
    """Check a creation body; currency comes back upper-cased."""

    if not isinstance(body, dict):
        logger.warning("validation_failed operation=create error=body is not an object")
        return _rejected('"value" must be of type object')
    return _parse(PaymentIntentCreateRequest, body, "create")


def validate_payment_intent_id(payment_intent_id: Any) -> Result[str, PaymentError]:
    if not isinstance(payment_intent_id, str) or not payment_intent_id.strip():
        logger.warning("validation_failed operation=intent_id error=missing id")
        return _rejected('"paymentIntentId" is not allowed to be empty')
    return Ok(payment_intent_id)


def validate_confirm_payment(payment_intent_id: Any, body: Any) -> Result[ConfirmPaymentRequest, PaymentError]:
    intent_id = validate_payment_intent_id(payment_intent_id)
    if isinstance(intent_id, Err):
        return intent_id
    data = {"payment_intent_id": intent_id.value}
    if isinstance(body, dict) and "paymentMethodId" in body:
        data["payment_method_id"] = body["paymentMethodId"]
    return _parse(
        ConfirmPaymentRequest,
        data,
        "confirm",
        aliases={"payment_method_id": "paymentMethodId", "payment_intent_id": "paymentIntentId"},
    )
