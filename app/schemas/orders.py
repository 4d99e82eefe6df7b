"""
Order/payment request bodies and response serializers.
Fields are optional at the schema level; OrderService validates and returns 400, not 422.
"""
from typing import Any

from pydantic import BaseModel, Field

from app.models.order import Order


class _CamelModel(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}


class CustomerIn(_CamelModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None


class OrderCreateIn(CustomerIn):
    """Manual UPI order."""
    item_ref: str | None = Field(default=None, alias="itemRef")
    item_type: str | None = Field(default="plan", alias="itemType")
    utr_number: str | None = Field(default=None, alias="utrNumber")


class SessionCreateIn(CustomerIn):
    """Gateway checkout session."""
    item_ref: str | None = Field(default=None, alias="itemRef")
    item_type: str | None = Field(default="plan", alias="itemType")


class PaymentLinkIn(_CamelModel):
    amount: float | None = None
    purpose: str | None = None
    customer_name: str | None = Field(default=None, alias="customerName")
    customer_phone: str | None = Field(default=None, alias="customerPhone")
    customer_email: str | None = Field(default=None, alias="customerEmail")
    expiry_days: int | None = Field(default=None, alias="expiryDays")


class OrderCheckIn(_CamelModel):
    order_id: str | None = Field(default=None, alias="orderId")
    phone: str | None = None


class OrderAdminUpdate(_CamelModel):
    status: str | None = None
    notes: str | None = None


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def order_to_item(order: Order) -> dict[str, Any]:
    """Full admin view of an order."""
    return {
        "id": order.id,
        "orderId": order.order_id,
        "itemType": order.item_type,
        "planId": order.plan_id,
        "rankId": order.rank_id,
        "planName": order.plan_name,
        "amount": order.amount,
        "name": order.name,
        "phone": order.phone,
        "email": order.email,
        "utrNumber": order.utr_number,
        "paymentMethod": order.payment_method,
        "gatewayOrderId": order.gateway_order_id,
        "gatewayPaymentId": order.gateway_payment_id,
        "gatewayPaymentStatus": order.gateway_payment_status,
        "gatewayPaymentMode": order.gateway_payment_mode,
        "status": order.status,
        "notes": order.notes,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }


def order_event_payload(order: Order) -> dict[str, Any]:
    """Summary pushed to admin subscribers when an order is approved."""
    return {
        "id": order.id,
        "orderId": order.order_id,
        "planName": order.plan_name,
        "amount": order.amount,
        "name": order.name,
        "phone": order.phone,
        "status": order.status,
        "paymentMethod": order.payment_method,
        "createdAt": _iso(order.created_at),
    }


def verify_response(order: Order, success: bool, status: str, message: str | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "success": success,
        "orderId": order.order_id,
        "status": status,
        "planName": order.plan_name,
        "amount": order.amount,
    }
    if message:
        out["message"] = message
    return out
