"""
Order creation, lookup and admin listing.
Prices are resolved from the catalog here; client-sent amounts are never trusted.
"""
import logging
import re
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateReferenceError, NotFoundError, ValidationError
from app.models.order import (
    ITEM_PLAN,
    ITEM_RANK,
    METHOD_CASHFREE,
    METHOD_UPI_MANUAL,
    ORDER_STATUSES,
    STATUS_APPROVED,
    STATUS_AWAITING_PAYMENT,
    STATUS_PENDING,
    STATUS_REJECTED,
    Order,
)
from app.models.plan import Plan
from app.models.rank import Rank
from app.schemas.orders import CustomerIn, OrderCreateIn, PaymentLinkIn, SessionCreateIn
from app.services.cashfree.client import CashfreeClient
from app.services.cashfree.models import Customer, GatewayLink, GatewaySession, expiry_from_days
from app.utils.metrics import duplicate_utr_total, orders_created_total

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^[6-9]\d{9}$")
ID_ALPHABET = string.digits + string.ascii_uppercase
ORDER_PREFIX = "ORD"
LINK_PREFIX = "LINK"

DASHBOARD_RANGES = ("all", "today", "week", "month")
RECENT_ORDERS_LIMIT = 10


def generate_order_id(prefix: str = ORDER_PREFIX, now_ms: int | None = None) -> str:
    """prefix + last 8 digits of the millisecond clock + 4 random base36 chars."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(4))
    return f"{prefix}{str(now_ms)[-8:]}{suffix}"


def normalize_utr(value: str | None, min_length: int) -> str:
    utr = (value or "").strip().upper()
    if not utr:
        raise ValidationError("UTR number is required")
    if len(utr) < min_length:
        raise ValidationError(f"UTR number must be at least {min_length} characters")
    return utr


@dataclass(frozen=True)
class ResolvedItem:
    item_type: str
    plan_id: str | None
    rank_id: str | None
    name: str
    amount: float


def _validated_customer(data: CustomerIn, require_email: bool) -> Customer:
    name = (data.name or "").strip()
    phone = (data.phone or "").strip()
    email = (data.email or "").strip()
    if not name:
        raise ValidationError("Please enter your full name")
    if not phone:
        raise ValidationError("Please enter your WhatsApp number")
    if not PHONE_RE.match(phone):
        raise ValidationError("Please enter a valid 10-digit mobile number")
    if require_email and not email:
        raise ValidationError("Email is required for online payment")
    return Customer(name=name, phone=phone, email=email)


class OrderService:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- catalog pricing ----------

    def resolve_item(self, item_type: str | None, item_ref: str | None) -> ResolvedItem:
        item_type = (item_type or ITEM_PLAN).strip().lower()
        if item_type not in (ITEM_PLAN, ITEM_RANK):
            raise ValidationError("Order type (plan or rank) is required")
        if not item_ref:
            raise ValidationError("Order type (plan or rank) is required")

        if item_type == ITEM_RANK:
            rank = self.db.query(Rank).filter(Rank.id == item_ref).one_or_none()
            if rank is None:
                raise NotFoundError("Rank not found", {"rank_id": item_ref})
            resolved = ResolvedItem(ITEM_RANK, None, rank.id, rank.name, float(rank.discounted_price))
        else:
            plan = self.db.query(Plan).filter(Plan.id == item_ref).one_or_none()
            if plan is None:
                raise NotFoundError("Plan not found", {"plan_id": item_ref})
            resolved = ResolvedItem(ITEM_PLAN, plan.id, None, plan.name, plan.effective_price())

        if resolved.amount <= 0:
            raise ValidationError("Invalid amount")
        return resolved

    # ---------- creation ----------

    def create_manual_order(self, data: OrderCreateIn, utr_min_length: int) -> Order:
        """UPI transfer submitted by the customer; waits for admin verification."""
        customer = _validated_customer(data, require_email=False)
        utr = normalize_utr(data.utr_number, utr_min_length)
        item = self.resolve_item(data.item_type, data.item_ref)

        order = Order(
            order_id=generate_order_id(),
            item_type=item.item_type,
            plan_id=item.plan_id,
            rank_id=item.rank_id,
            plan_name=item.name,
            amount=item.amount,
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
            utr_number=utr,
            payment_method=METHOD_UPI_MANUAL,
            status=STATUS_PENDING,
        )
        self.db.add(order)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self.db.query(Order.id).filter(Order.utr_number == utr).first() is not None:
                duplicate_utr_total.inc()
                logger.warning("duplicate_utr_rejected", extra={"order_id": order.order_id})
                raise DuplicateReferenceError(
                    "This UTR number has already been used. Please check and try again.",
                    {"utr_number": utr},
                )
            raise
        self.db.refresh(order)
        orders_created_total.labels(payment_method=METHOD_UPI_MANUAL).inc()
        logger.info("order_created", extra={"order_id": order.order_id, "payment_mode": METHOD_UPI_MANUAL})
        return order

    def create_gateway_order(
        self,
        data: SessionCreateIn,
        gateway: CashfreeClient,
        return_url: str,
    ) -> tuple[Order, GatewaySession]:
        """
        Gateway session first, local row second: a GatewayError leaves nothing persisted.
        The order is stored as awaiting_payment before any success can be reported.
        """
        customer = _validated_customer(data, require_email=True)
        item = self.resolve_item(data.item_type, data.item_ref)
        order_id = generate_order_id()

        session = gateway.create_session(order_id, item.amount, customer, return_url)

        order = Order(
            order_id=order_id,
            item_type=item.item_type,
            plan_id=item.plan_id,
            rank_id=item.rank_id,
            plan_name=item.name,
            amount=item.amount,
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
            utr_number=None,
            payment_method=METHOD_CASHFREE,
            gateway_order_id=session.gateway_order_id,
            status=STATUS_AWAITING_PAYMENT,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        orders_created_total.labels(payment_method=METHOD_CASHFREE).inc()
        logger.info("gateway_order_created", extra={"order_id": order_id})
        return order, session

    def create_payment_link(
        self,
        data: PaymentLinkIn,
        gateway: CashfreeClient,
        return_url: str,
        default_purpose: str,
    ) -> tuple[Order, GatewayLink]:
        """Admin-issued ad hoc link; the local order is keyed by the link id."""
        if data.amount is None or data.amount <= 0:
            raise ValidationError("Valid amount is required")
        name = (data.customer_name or "").strip()
        phone = (data.customer_phone or "").strip()
        email = (data.customer_email or "").strip()
        if not name:
            raise ValidationError("Customer name is required")
        if not phone:
            raise ValidationError("Customer phone is required")
        if not email:
            raise ValidationError("Customer email is required")
        if not PHONE_RE.match(phone):
            raise ValidationError("Please enter a valid 10-digit mobile number")

        amount = float(data.amount)
        purpose = (data.purpose or "").strip() or default_purpose
        link_id = generate_order_id(LINK_PREFIX)
        expiry = expiry_from_days(data.expiry_days, datetime.now(timezone.utc))

        link = gateway.create_payment_link(
            link_id, amount, purpose, Customer(name=name, phone=phone, email=email), return_url, expiry
        )

        order = Order(
            order_id=link_id,
            item_type=ITEM_RANK,
            plan_name=purpose,
            amount=amount,
            name=name,
            phone=phone,
            email=email,
            payment_method=METHOD_CASHFREE,
            gateway_order_id=link.link_id,
            status=STATUS_AWAITING_PAYMENT,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        orders_created_total.labels(payment_method=METHOD_CASHFREE).inc()
        logger.info("payment_link_created", extra={"order_id": link_id, "link_id": link.link_id})
        return order, link

    # ---------- lookup ----------

    def get_by_order_id(self, order_id: str) -> Order | None:
        return self.db.query(Order).filter(Order.order_id == order_id).one_or_none()

    def get(self, ident: str) -> Order | None:
        """Lookup by internal id, falling back to the public order id."""
        order = self.db.query(Order).filter(Order.id == ident).one_or_none()
        if order is None:
            order = self.get_by_order_id(ident)
        return order

    def check(self, order_id: str | None, phone: str | None) -> Order:
        """Public status lookup; both order id and phone must match."""
        if not order_id or not phone:
            raise NotFoundError("Order not found")
        order = (
            self.db.query(Order)
            .filter(Order.order_id == order_id.strip(), Order.phone == phone.strip())
            .one_or_none()
        )
        if order is None:
            raise NotFoundError("Order not found", {"order_id": order_id})
        return order

    def list_orders(self, status: str | None = None, limit: int = 50) -> list[Order]:
        query = self.db.query(Order)
        if status:
            if status not in ORDER_STATUSES:
                raise ValidationError("Invalid status", {"status": status})
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc()).limit(limit).all()

    def delete(self, ident: str) -> bool:
        order = self.get(ident)
        if order is None:
            return False
        self.db.delete(order)
        self.db.commit()
        logger.info("order_deleted", extra={"order_id": order.order_id})
        return True

    # ---------- dashboard ----------

    def dashboard(self, range_key: str = "all", now: datetime | None = None) -> dict:
        if range_key not in DASHBOARD_RANGES:
            raise ValidationError("Invalid range", {"range": range_key})
        now = now or datetime.now(timezone.utc)
        since = None
        if range_key == "today":
            since = now.replace(hour=0, minute=0, second=0, microsecond=0)
        elif range_key == "week":
            since = now - timedelta(days=7)
        elif range_key == "month":
            since = now - timedelta(days=30)

        base = self.db.query(Order)
        if since is not None:
            base = base.filter(Order.created_at >= since)

        counts = dict(
            base.with_entities(Order.status, func.count(Order.id)).group_by(Order.status).all()
        )
        revenue_query = self.db.query(func.coalesce(func.sum(Order.amount), 0.0)).filter(
            Order.status == STATUS_APPROVED
        )
        if since is not None:
            revenue_query = revenue_query.filter(Order.created_at >= since)
        revenue = revenue_query.scalar() or 0.0

        recent = base.order_by(Order.created_at.desc()).limit(RECENT_ORDERS_LIMIT).all()
        return {
            "range": range_key,
            "totalOrders": sum(counts.values()),
            "pendingOrders": counts.get(STATUS_PENDING, 0),
            "awaitingPaymentOrders": counts.get(STATUS_AWAITING_PAYMENT, 0),
            "approvedOrders": counts.get(STATUS_APPROVED, 0),
            "rejectedOrders": counts.get(STATUS_REJECTED, 0),
            "totalRevenue": float(revenue),
            "recentOrders": recent,
        }
