"""Tests for EmailSender: SSL first, STARTTLS fallback, skip when disabled or unconfigured."""
import smtplib
from unittest.mock import MagicMock, patch

import pytest


def _sender(**overrides):
    from app.services.notifications.email import EmailConfig, EmailSender

    values = {"enabled": True, "user": "office@example.com", "app_password": "abcd efgh ijkl mnop", "from_name": ""}
    values.update(overrides)
    return EmailSender(EmailConfig(**values), host="smtp.example.com", timeout=5, default_from_name="Come Office")


class TestEmailSender:
    def test_disabled_is_skipped(self):
        with patch("smtplib.SMTP_SSL") as ssl:
            assert _sender(enabled=False).send("a@example.com", "s", "<p>x</p>") is False
        ssl.assert_not_called()

    def test_missing_credentials_is_skipped(self):
        with patch("smtplib.SMTP_SSL") as ssl:
            assert _sender(app_password="").send("a@example.com", "s", "<p>x</p>") is False
        ssl.assert_not_called()

    def test_ssl_success(self):
        with patch("smtplib.SMTP_SSL") as ssl, patch("smtplib.SMTP") as plain:
            smtp = ssl.return_value.__enter__.return_value

            assert _sender().send("a@example.com", "Subject", "<p>x</p>", [("c.pdf", b"%PDF-1.4")]) is True

        ssl.assert_called_once_with("smtp.example.com", 465, timeout=5)
        smtp.login.assert_called_once_with("office@example.com", "abcdefghijklmnop")
        msg = smtp.send_message.call_args[0][0]
        assert msg["To"] == "a@example.com"
        assert "Come Office" in msg["From"]
        assert [part.get_filename() for part in msg.iter_attachments()] == ["c.pdf"]
        plain.assert_not_called()

    def test_falls_back_to_starttls(self):
        with patch("smtplib.SMTP_SSL", side_effect=OSError("connection refused")), patch("smtplib.SMTP") as plain:
            smtp = plain.return_value.__enter__.return_value

            assert _sender().send("a@example.com", "s", "<p>x</p>") is True

        plain.assert_called_once_with("smtp.example.com", 587, timeout=5)
        smtp.starttls.assert_called_once()
        smtp.send_message.assert_called_once()

    def test_both_ports_failing_raises(self):
        from app.core.errors import UpstreamError

        with patch("smtplib.SMTP_SSL", side_effect=OSError("refused")), patch(
            "smtplib.SMTP", side_effect=smtplib.SMTPException("nope")
        ):
            with pytest.raises(UpstreamError):
                _sender().send("a@example.com", "s", "<p>x</p>")

    def test_custom_from_name(self):
        assert _sender(from_name="Rank Desk").from_name == "Rank Desk"


class TestTemplates:
    def test_approved_html_escapes_customer_fields(self):
        from app.models.order import Order
        from app.services.notifications.templates import order_approved_html

        order = Order(order_id="ORD1", plan_name="1st Rank", amount=1999.0, name="<script>x</script>", phone="9876543210")

        html = order_approved_html(order, "Come Office", "+917041508202")

        assert "<script>x</script>" not in html
        assert "ORD1" in html
