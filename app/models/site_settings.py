from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base, JSONType


class SiteSettings(Base):
    """Site settings (single row, id=1): UPI details, contacts, email credentials, homepage promo."""

    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, default=1)
    upi_id = Column(String, nullable=False, default="example@upi")
    upi_name = Column(String, nullable=False, default="Dream11 Tips")
    telegram_link = Column(String, nullable=False, default="https://t.me/dream11tips")
    whatsapp_number = Column(String, nullable=False, default="+917041508202")
    contact_number = Column(String, nullable=False, default="+917041508202")

    email_enabled = Column(Boolean, nullable=False, default=False)
    email_user = Column(String, nullable=False, default="")
    email_app_password = Column(String, nullable=False, default="")
    email_from_name = Column(String, nullable=False, default="")

    featured_match = Column(JSONType, nullable=True)
    timer_deadline = Column(DateTime(timezone=True), nullable=True)
    rank_promo_image_url = Column(String, nullable=False, default="")

    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
