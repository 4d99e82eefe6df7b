"""
SMTP email sender. Credentials come from the site settings row, not from the environment.
Tries implicit SSL on 465 first, then STARTTLS on 587.
"""
import logging
import re
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from pydantic import BaseModel

from app.core.errors import UpstreamError
from app.models.site_settings import SiteSettings

logger = logging.getLogger(__name__)

SSL_PORT = 465
STARTTLS_PORT = 587


class EmailConfig(BaseModel):
    enabled: bool = False
    user: str = ""
    app_password: str = ""
    from_name: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_settings_row(cls, row: SiteSettings) -> "EmailConfig":
        return cls(
            enabled=bool(row.email_enabled),
            user=row.email_user or "",
            app_password=row.email_app_password or "",
            from_name=row.email_from_name or "",
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.user and self.app_password)


class EmailSender:
    def __init__(
        self,
        config: EmailConfig,
        host: str,
        timeout: float,
        default_from_name: str,
    ) -> None:
        self.config = config
        self.host = host
        self.timeout = timeout
        self.from_name = config.from_name or default_from_name

    def _build_message(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: list[tuple[str, bytes]],
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.from_name, self.config.user))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(subject)
        msg.add_alternative(html, subtype="html")
        for filename, data in attachments:
            msg.add_attachment(data, maintype="application", subtype="pdf", filename=filename)
        return msg

    def ready(self, to: str) -> bool:
        """False (with a logged skip) when sending is disabled or credentials are missing."""
        if not self.config.enabled:
            logger.info("email_skipped_disabled", extra={"email": to})
            return False
        if not self.config.has_credentials:
            logger.warning("email_skipped_missing_credentials", extra={"email": to})
            return False
        return True

    def _send_ssl(self, msg: EmailMessage, password: str) -> None:
        with smtplib.SMTP_SSL(self.host, SSL_PORT, timeout=self.timeout) as smtp:
            smtp.login(self.config.user, password)
            smtp.send_message(msg)

    def _send_starttls(self, msg: EmailMessage, password: str) -> None:
        with smtplib.SMTP(self.host, STARTTLS_PORT, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(self.config.user, password)
            smtp.send_message(msg)

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: list[tuple[str, bytes]] | None = None,
    ) -> bool:
        """
        Returns False when sending is disabled or unconfigured (logged skip).
        Raises UpstreamError when both ports fail.
        """
        if not self.ready(to):
            return False

        # app passwords are often pasted with spaces
        password = re.sub(r"\s", "", self.config.app_password)
        msg = self._build_message(to, subject, html, attachments or [])

        try:
            self._send_ssl(msg, password)
            logger.info("email_sent", extra={"email": to, "method": f"smtp:{SSL_PORT}"})
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("email_ssl_failed", extra={"email": to, "error": str(e)})

        try:
            self._send_starttls(msg, password)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_send_failed", extra={"email": to, "error": str(e)})
            raise UpstreamError("SMTP send failed", {"email": to}) from e
        logger.info("email_sent", extra={"email": to, "method": f"smtp:{STARTTLS_PORT}"})
        return True
