"""
Order model: one row per purchase of a plan or rank.
order_id is the public identifier; utr_number is unique across orders (nulls exempt).
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, String, Text

from app.db.base import Base

STATUS_AWAITING_PAYMENT = "awaiting_payment"
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_COMPLETED = "completed"

ORDER_STATUSES = (
    STATUS_AWAITING_PAYMENT,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_COMPLETED,
)
UNDECIDED_STATUSES = (STATUS_AWAITING_PAYMENT, STATUS_PENDING)

METHOD_UPI_MANUAL = "upi_manual"
METHOD_CASHFREE = "cashfree"

ITEM_PLAN = "plan"
ITEM_RANK = "rank"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(String, unique=True, nullable=False, index=True)
    item_type = Column(String, nullable=False, default=ITEM_PLAN)   # plan / rank
    plan_id = Column(String, nullable=True)
    rank_id = Column(String, nullable=True)
    plan_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)                          # computed server-side
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=False, default="")
    payment_method = Column(String, nullable=False, default=METHOD_UPI_MANUAL)
    utr_number = Column(String, unique=True, nullable=True)          # uppercased, upi_manual only
    gateway_order_id = Column(String, nullable=True)
    gateway_payment_id = Column(String, nullable=True)
    gateway_payment_status = Column(String, nullable=True)
    gateway_payment_mode = Column(String, nullable=True)
    status = Column(String, nullable=False, default=STATUS_PENDING, index=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
