from datetime import datetime, timezone

from pydantic import BaseModel, field_validator

from enums.order_status import OrderStatus


class GatewayPaymentDTO(BaseModel):
    """Authoritative payment state as returned by the gateway's payment lookup."""
    id: str
    status: str | None = None
    status_detail: str | None = None
    external_reference: str | None = None
    transaction_amount: float | None = None
    date_approved: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        # The gateway sends numeric ids
        return str(value)

    @field_validator("date_approved")
    @classmethod
    def to_naive_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class PaymentIntentDTO(BaseModel):
    """Gateway payment intent (checkout preference) for an order."""
    preference_id: str
    redirect_url: str
    sandbox_redirect_url: str | None = None


class PaymentNotificationDTO(BaseModel):
    """Webhook notification: only topic and payment id are trusted."""
    topic: str
    payment_id: str
    request_id: str | None = None


class ReconciliationResultDTO(BaseModel):
    """
    Outcome of one webhook notification.

    result is one of: applied, duplicate, stale, amount_mismatch,
    unknown_status, order_not_found, payment_not_found. All of them answer
    the webhook with success so the gateway stops re-delivering.
    """
    result: str
    payment_id: str
    order_id: str | None = None
    order_status: OrderStatus | None = None
