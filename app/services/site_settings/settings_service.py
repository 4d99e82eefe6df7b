"""Singleton site settings: UPI details, contacts, email credentials, homepage promo content."""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.models.site_settings import SiteSettings

DEFAULT_FEATURED_MATCH = {
    "team1Name": "Mumbai",
    "team1Short": "MI",
    "team1Color": "#004BA0",
    "team2Name": "Chennai",
    "team2Short": "CSK",
    "team2Color": "#F9CD05",
    "matchTime": "Today 7:30 PM",
    "venue": "Wankhede Stadium",
    "tournament": "IPL 2026",
    "isLive": False,
}

# payload key -> column
EDITABLE_FIELDS = {
    "upiId": "upi_id",
    "upiName": "upi_name",
    "telegramLink": "telegram_link",
    "whatsappNumber": "whatsapp_number",
    "contactNumber": "contact_number",
    "rankPromoImage": "rank_promo_image_url",
}
EMAIL_FIELDS = {
    "enabled": "email_enabled",
    "emailUser": "email_user",
    "emailAppPassword": "email_app_password",
    "emailFromName": "email_from_name",
}


def _parse_deadline(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("Invalid deadline", {"deadline": value})
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SiteSettingsService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self) -> SiteSettings | None:
        return self.db.query(SiteSettings).filter(SiteSettings.id == 1).first()

    def get_or_create(self) -> SiteSettings:
        row = self.get()
        if row:
            return row
        row = SiteSettings(id=1)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def as_dict(self, mask_password: bool = True) -> dict[str, Any]:
        row = self.get_or_create()
        password = row.email_app_password or ""
        if mask_password and password:
            password = "*" * 8
        return {
            "upiId": row.upi_id,
            "upiName": row.upi_name,
            "telegramLink": row.telegram_link,
            "whatsappNumber": row.whatsapp_number,
            "contactNumber": row.contact_number,
            "emailSettings": {
                "enabled": row.email_enabled,
                "emailUser": row.email_user,
                "emailAppPassword": password,
                "emailFromName": row.email_from_name,
            },
            "featuredMatch": row.featured_match or DEFAULT_FEATURED_MATCH,
            "timerDeadline": row.timer_deadline.isoformat() if row.timer_deadline else None,
            "rankPromoImage": row.rank_promo_image_url,
            "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
        }

    def public_dict(self) -> dict[str, Any]:
        """Subset safe for the public site (no credentials)."""
        row = self.get_or_create()
        return {
            "upiId": row.upi_id,
            "upiName": row.upi_name,
            "telegramLink": row.telegram_link,
            "whatsappNumber": row.whatsapp_number,
            "contactNumber": row.contact_number,
        }

    def update(self, data: dict[str, Any]) -> dict[str, Any]:
        row = self.get_or_create()
        for key, column in EDITABLE_FIELDS.items():
            if key in data and data[key] is not None:
                setattr(row, column, str(data[key]).strip())
        email = data.get("emailSettings") or {}
        for key, column in EMAIL_FIELDS.items():
            if key not in email or email[key] is None:
                continue
            if column == "email_enabled":
                row.email_enabled = bool(email[key])
            elif column == "email_app_password" and set(str(email[key])) == {"*"}:
                # masked value echoed back from GET, keep stored password
                continue
            else:
                setattr(row, column, str(email[key]).strip())
        if "featuredMatch" in data:
            row.featured_match = data["featuredMatch"]
        if "timerDeadline" in data:
            row.timer_deadline = _parse_deadline(data["timerDeadline"])
        row.updated_at = datetime.now(timezone.utc)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self.as_dict()

    def featured_match(self) -> dict[str, Any]:
        return self.get_or_create().featured_match or DEFAULT_FEATURED_MATCH

    def set_featured_match(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.update({"featuredMatch": data})["featuredMatch"]

    def timer(self) -> dict[str, Any]:
        row = self.get_or_create()
        deadline = row.timer_deadline
        if deadline is not None and deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=timezone.utc)
        remaining = 0
        if deadline:
            remaining = max(0, int((deadline - datetime.now(timezone.utc)).total_seconds()))
        return {
            "deadline": deadline.isoformat() if deadline else None,
            "remainingSeconds": remaining,
            "active": remaining > 0,
        }

    def set_timer(self, deadline: Any) -> dict[str, Any]:
        self.update({"timerDeadline": deadline})
        return self.timer()
