"""
Order notification dispatcher: renders the email, attaches the certificate, sends over SMTP.
Called from Celery tasks; the approval itself never waits on it.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.models.order import Order
from app.services.certificates.generator import (
    CertificateContext,
    certificate_filename,
    generate_guarantee_certificate,
)
from app.services.notifications import templates
from app.services.notifications.email import EmailConfig, EmailSender
from app.services.site_settings.settings_service import SiteSettingsService

logger = logging.getLogger(__name__)


class OrderNotificationService:
    def __init__(self, db: Session, config: Settings) -> None:
        self.db = db
        self.config = config

    def _sender(self, email_config: EmailConfig) -> EmailSender:
        return EmailSender(
            email_config,
            host=self.config.smtp_host,
            timeout=self.config.smtp_timeout_seconds,
            default_from_name=self.config.email_default_from_name,
        )

    def send_order_approved(self, order: Order) -> bool:
        """Approval email with the guarantee letter attached. False = skipped."""
        if not order.email:
            logger.info("approval_email_skipped_no_email", extra={"order_id": order.order_id})
            return False
        row = SiteSettingsService(self.db).get_or_create()
        email_config = EmailConfig.from_settings_row(row)
        sender = self._sender(email_config)
        if not sender.ready(order.email):
            return False

        ctx = CertificateContext.from_settings_row(row, datetime.now(timezone.utc).date())
        pdf = generate_guarantee_certificate(order, ctx)
        sent = sender.send(
            order.email,
            templates.order_approved_subject(sender.from_name),
            templates.order_approved_html(order, sender.from_name, row.whatsapp_number),
            attachments=[(certificate_filename(order), pdf)],
        )
        if sent:
            logger.info("approval_email_sent", extra={"order_id": order.order_id, "email": order.email})
        return sent

    def send_order_placed(self, order: Order) -> bool:
        if not order.email:
            return False
        row = SiteSettingsService(self.db).get_or_create()
        sender = self._sender(EmailConfig.from_settings_row(row))
        return sender.send(
            order.email,
            templates.order_placed_subject(order, sender.from_name),
            templates.order_placed_html(order, sender.from_name, row.whatsapp_number),
        )
