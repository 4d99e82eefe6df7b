"""
HTML email templates for order notifications.
Customer-provided values are escaped before interpolation.
"""
from html import escape

from app.models.order import Order

GREEN = "#10B981"
GREEN_DARK = "#059669"
RED = "#DC2626"
GRAY_TEXT = "#666666"
DARK_TEXT = "#333333"

DEFAULT_WHATSAPP = "7041508202"


def _whatsapp_digits(number: str | None) -> str:
    return (number or "").replace("+91", "").strip() or DEFAULT_WHATSAPP


def _details_table(order: Order, accent: str, status_label: str) -> str:
    rows = [
        ("Order ID:", escape(order.order_id)),
        ("Plan:", escape(order.plan_name)),
        ("Amount:", f"&#8377;{order.amount:g}"),
        ("Status:", status_label),
    ]
    cells = "".join(
        f'<tr><td style="color:{GRAY_TEXT};padding:8px;">{label}</td>'
        f'<td style="color:{DARK_TEXT};font-weight:bold;text-align:right;padding:8px;">{value}</td></tr>'
        for label, value in rows
    )
    return (
        f'<table role="presentation" width="100%" cellspacing="0" cellpadding="0" '
        f'style="border:2px solid {accent};border-radius:8px;margin:25px 0;">{cells}</table>'
    )


def _wrap(title: str, header_color: str, brand: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="margin:0;padding:0;font-family:Arial,sans-serif;background-color:#f4f4f4;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:600px;margin:0 auto;background-color:#ffffff;">
    <tr><td style="background:{header_color};padding:30px;text-align:center;">
      <h1 style="color:#ffffff;margin:0;font-size:28px;">{escape(brand)}</h1>
      <p style="color:#ffffff;margin:10px 0 0;font-size:16px;">{title}</p>
    </td></tr>
    <tr><td style="padding:40px 30px;">{body}</td></tr>
    <tr><td style="background-color:#f9fafb;padding:20px;text-align:center;color:#999999;font-size:12px;">
      &copy; {escape(brand)}. All rights reserved.
    </td></tr>
  </table>
</body>
</html>"""


def order_approved_html(order: Order, brand: str, whatsapp_number: str | None) -> str:
    whatsapp = _whatsapp_digits(whatsapp_number)
    body = (
        f'<h2 style="color:{DARK_TEXT};text-align:center;">Congratulations, {escape(order.name)}!</h2>'
        f'<p style="color:{GRAY_TEXT};font-size:16px;line-height:1.6;text-align:center;">'
        f"Your payment has been verified and approved. Welcome to the {escape(brand)} family!</p>"
        + _details_table(order, GREEN, f'<span style="color:{GREEN};">&#10003; Approved</span>')
        + '<p style="background-color:#FEF3C7;border-left:4px solid #F59E0B;padding:15px;color:#92400E;font-size:14px;">'
        "<strong>Attachment:</strong> Your official Guarantee Certificate is attached to this email. "
        "Please save it for your records.</p>"
        f'<ul style="color:{GRAY_TEXT};font-size:14px;line-height:2;">'
        "<li>Save your Guarantee Certificate (PDF attached)</li>"
        "<li>Join our WhatsApp group for daily tips</li>"
        f"<li>Contact us for any queries: +91 {escape(whatsapp)}</li></ul>"
    )
    return _wrap("Payment Approved!", f"linear-gradient(135deg, {GREEN} 0%, {GREEN_DARK} 100%)", brand, body)


def order_placed_html(order: Order, brand: str, whatsapp_number: str | None) -> str:
    whatsapp = _whatsapp_digits(whatsapp_number)
    body = (
        f'<h2 style="color:{DARK_TEXT};text-align:center;">Thank you, {escape(order.name)}!</h2>'
        f'<p style="color:{GRAY_TEXT};font-size:16px;line-height:1.6;text-align:center;">'
        "We have received your order. Our team is verifying your payment.</p>"
        + _details_table(order, RED, "Pending verification")
        + f'<p style="color:{GRAY_TEXT};font-size:14px;">Verification usually takes 10-30 minutes. '
        "You will receive another email with your Guarantee Certificate once approved.</p>"
        f'<p style="color:{GRAY_TEXT};font-size:14px;">Questions? WhatsApp us at +91 {escape(whatsapp)}</p>'
    )
    return _wrap("Order Received", RED, brand, body)


def order_approved_subject(brand: str) -> str:
    return f"Payment Approved - Your Guarantee Certificate | {brand}"


def order_placed_subject(order: Order, brand: str) -> str:
    return f"Order Confirmed - {order.order_id} | {brand}"
