"""
DTOs for order reconciliation: parsed webhook events and the verify-poll result.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ValidationError

PAYMENT_SUCCESS_EVENT = "PAYMENT_SUCCESS_WEBHOOK"

SOURCE_WEBHOOK = "webhook"
SOURCE_VERIFY = "verify"
SOURCE_VERIFY_LINK = "verify_link"
SOURCE_ADMIN = "admin"


class WebhookEvent(BaseModel):
    """Fields of a gateway webhook the core needs. payment_amount None = not reported."""

    event_type: str
    order_id: str
    payment_id: str | None = None
    payment_status: str | None = None
    payment_mode: str | None = None
    payment_amount: float | None = None

    model_config = {"frozen": True}

    @property
    def is_payment_success(self) -> bool:
        return self.event_type == PAYMENT_SUCCESS_EVENT


class VerifyResult(BaseModel):
    """Outcome of a client verify poll; status is the canonical stored status."""

    success: bool
    status: str
    message: str | None = None

    model_config = {"frozen": True}


def parse_webhook_event(payload: Any) -> WebhookEvent:
    """Raise ValidationError unless payload carries data.order and data.payment."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValidationError("Invalid payload")
    order = data.get("order")
    payment = data.get("payment")
    if not isinstance(order, dict) or not isinstance(payment, dict) or not order.get("order_id"):
        raise ValidationError("Invalid payload")

    amount = payment.get("payment_amount")
    try:
        amount = float(amount) if amount is not None else None
    except (TypeError, ValueError):
        raise ValidationError("Invalid payment_amount")

    payment_status = payment.get("payment_status")
    payment_mode = payment.get("payment_group")
    for value in (payment_status, payment_mode):
        if value is not None and not isinstance(value, str):
            raise ValidationError("Invalid payload")

    payment_id = payment.get("cf_payment_id")
    try:
        return WebhookEvent(
            event_type=str(payload.get("type") or ""),
            order_id=str(order["order_id"]),
            payment_id=str(payment_id) if payment_id is not None else None,
            payment_status=payment_status,
            payment_mode=payment_mode,
            payment_amount=amount,
        )
    except PydanticValidationError:
        raise ValidationError("Invalid payload")
