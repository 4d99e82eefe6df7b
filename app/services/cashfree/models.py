"""
DTOs returned by the Cashfree client. Amounts are rupees as floats; None means the gateway did not report one.
"""
from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, Field


class Customer(BaseModel):
    name: str
    phone: str
    email: str = ""

    model_config = {"frozen": True}

    @property
    def customer_id(self) -> str:
        return f"cust_{self.phone}"


class GatewaySession(BaseModel):
    """Checkout session: the gateway's order reference and the handle the client SDK opens."""

    gateway_order_id: str
    session_handle: str

    model_config = {"frozen": True}


class GatewayPayment(BaseModel):
    payment_id: str
    payment_status: str
    payment_amount: float | None = None
    payment_mode: str | None = None

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.payment_status == "SUCCESS"


class GatewayLink(BaseModel):
    link_id: str
    link_url: str
    expires_at: str | None = None

    model_config = {"frozen": True}


class GatewayLinkOrder(BaseModel):
    gateway_order_id: str | None = None
    order_status: str | None = None
    order_amount: float | None = None

    model_config = {"frozen": True}

    @property
    def paid(self) -> bool:
        return self.order_status == "PAID"


class GatewayLinkStatus(BaseModel):
    link_id: str
    link_status: str
    amount_paid: float | None = None
    orders: list[GatewayLinkOrder] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def paid(self) -> bool:
        return self.link_status == "PAID"

    def first_paid_order(self) -> GatewayLinkOrder | None:
        return next((o for o in self.orders if o.paid), None)


def expiry_from_days(days: int | None, now: datetime) -> str | None:
    """ISO expiry timestamp `days` after `now`, or None to use the gateway default."""
    if not days:
        return None
    return (now + timedelta(days=days)).isoformat()
