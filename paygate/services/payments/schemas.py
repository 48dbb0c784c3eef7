"""Request/response schemas for the payment intent endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class PaymentIntentCreateRequest(BaseModel):
    """Payload accepted by `POST /payment-intents`."""

    model_config = ConfigDict(extra="forbid")

    amount: int = Field(gt=0)
    currency: StrictStr = Field(min_length=3, max_length=3)
    payment_method_types: list[StrictStr] = Field(min_length=1)
    metadata: dict[str, Any] | None = None
    description: StrictStr | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def reject_boolean_amount(cls, value: Any) -> Any:
        # bool is an int subclass; lax mode would read `true` as 1.
        if isinstance(value, bool):
            raise ValueError("must be a number")
        return value

    @field_validator("metadata", "description", mode="before")
    @classmethod
    def reject_explicit_null(cls, value: Any) -> Any:
        # Optional means omitted, not null. Defaults skip this validator.
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, value: str) -> str:
        return value.upper()


class ConfirmPaymentRequest(BaseModel):
    """Path + body fields needed to confirm an intent."""

    payment_intent_id: StrictStr = Field(min_length=1)
    payment_method_id: StrictStr = Field(min_length=1)


class PaymentIntent(BaseModel):
    """Snapshot of a provider payment intent relayed to the caller."""

    id: str
    amount: int
    currency: str
    status: str
    client_secret: str | None
    created: int


class PaymentError(BaseModel):
    """Normalized failure carried in the `error` member of the envelope."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    code: str | None = None
    status_code: int = Field(default=500, alias="statusCode")

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SignatureError(BaseModel):
    """Webhook verification failure; deliberately carries no cause."""

    message: str = "Webhook signature verification failed"


class WebhookEvent(BaseModel):
    """Verified provider notification."""

    id: str
    type: str
    data: dict[str, Any]
    created: int

    @property
    def object_id(self) -> str | None:
        obj = self.data.get("object") or {}
        return obj.get("id")
