from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from app.db.base import Base, JSONType

BADGE_COLORS = {1: "#FFD700", 2: "#C0C0C0", 3: "#CD7F32"}


class Rank(Base):
    """Bookable rank (1st/2nd/3rd). Orders are charged discounted_price."""

    __tablename__ = "ranks"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    rank_number = Column(Integer, unique=True, nullable=False)  # 1, 2, 3
    name = Column(String, nullable=False)
    original_price = Column(Float, nullable=False)
    discounted_price = Column(Float, nullable=False)
    badge_color = Column(String, nullable=False, default="#FFD700")
    active = Column(Boolean, nullable=False, default=True)
    features = Column(JSONType, nullable=False, default=list)
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
