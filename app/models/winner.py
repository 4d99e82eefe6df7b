from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class Winner(Base):
    __tablename__ = "winners"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    amount = Column(String, nullable=False)  # display text, e.g. "1 Crore"
    rank = Column(String, nullable=False, default="1st")
    match = Column(String, nullable=False)
    image_url = Column(String, nullable=False, default="")
    image_public_id = Column(String, nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
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
