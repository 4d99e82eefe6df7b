"""
Plan model: subscription/tips plans sold on the site.
Price shown to customers is price minus discount percent, rounded.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from app.db.base import Base, JSONType


class Plan(Base):
    __tablename__ = "plans"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    period = Column(String, nullable=False, default="one-time")
    description = Column(Text, nullable=False, default="")
    features = Column(JSONType, nullable=False, default=list)
    image_url = Column(String, nullable=False, default="")
    popular = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    discount = Column(Integer, nullable=False, default=0)  # percent, 0..50
    discount_label = Column(String, nullable=False, default="")
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

    def effective_price(self) -> float:
        if self.discount:
            return float(round(self.price * (1 - self.discount / 100)))
        return float(self.price)
