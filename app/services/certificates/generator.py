"""
Guarantee letter PDF attached to the order-approved email.
generate_guarantee_certificate() is pure: same order and context give the same document.
"""
from __future__ import annotations

import io
from datetime import date
from xml.sax.saxutils import escape as xml_escape

from pydantic import BaseModel
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.models.order import Order
from app.models.site_settings import SiteSettings

BRAND_RED = colors.HexColor("#DC2626")
TEXT_COLOR = colors.HexColor("#333333")
CARD_BG = colors.HexColor("#F3F4F6")
LINE_COLOR = colors.HexColor("#CCCCCC")

MARGIN = 14 * mm
HEADER_HEIGHT = 42 * mm

DEFAULT_CONTACT_EMAIL = "office@dream11booking.com"
DEFAULT_CONTACT_PHONE = "+917041508202"


class CertificateContext(BaseModel):
    """Branding and contact details printed on the letter."""

    brand: str = "COME"
    office_label: str = "HEAD OFFICE"
    contact_email: str = DEFAULT_CONTACT_EMAIL
    whatsapp_number: str = DEFAULT_CONTACT_PHONE
    contact_number: str = DEFAULT_CONTACT_PHONE
    issued_on: date

    model_config = {"frozen": True}

    @classmethod
    def from_settings_row(cls, row: SiteSettings | None, issued_on: date) -> "CertificateContext":
        if row is None:
            return cls(issued_on=issued_on)
        return cls(
            contact_email=row.email_user or DEFAULT_CONTACT_EMAIL,
            whatsapp_number=row.whatsapp_number or DEFAULT_CONTACT_PHONE,
            contact_number=row.contact_number or DEFAULT_CONTACT_PHONE,
            issued_on=issued_on,
        )


def _draw_header(ctx: CertificateContext):
    def draw(canvas, doc) -> None:
        width, height = A4
        canvas.saveState()
        canvas.setFillColor(BRAND_RED)
        canvas.rect(0, height - HEADER_HEIGHT, width, HEADER_HEIGHT, stroke=0, fill=1)
        canvas.rect(width - 5 * mm, 0, 5 * mm, height, stroke=0, fill=1)
        canvas.setFillColor(colors.white)
        canvas.circle(MARGIN + 14 * mm, height - HEADER_HEIGHT / 2, 12 * mm, stroke=0, fill=1)
        canvas.setFillColor(BRAND_RED)
        canvas.setFont("Helvetica-Bold", 12)
        canvas.drawCentredString(MARGIN + 14 * mm, height - HEADER_HEIGHT / 2 - 4, ctx.brand)
        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 20)
        canvas.drawString(MARGIN + 32 * mm, height - HEADER_HEIGHT / 2 + 4, ctx.brand)
        canvas.setFont("Helvetica-Bold", 12)
        canvas.drawString(MARGIN + 32 * mm, height - HEADER_HEIGHT / 2 - 12, ctx.office_label)
        canvas.restoreState()
    return draw


def _format_amount(amount: float) -> str:
    return f"Rs.{amount:,.0f}" if float(amount).is_integer() else f"Rs.{amount:,.2f}"


def generate_guarantee_certificate(order: Order, ctx: CertificateContext) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN + 5 * mm,
        topMargin=HEADER_HEIGHT + 10 * mm,
        bottomMargin=MARGIN,
        title=f"Guarantee Letter {order.order_id}",
        invariant=True,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "Title", parent=styles["Title"], textColor=BRAND_RED, fontSize=26, leading=30, spaceAfter=12
    )
    body_style = ParagraphStyle("Body", parent=styles["Normal"], textColor=TEXT_COLOR, fontSize=11, leading=16)
    emphasis_style = ParagraphStyle("Emphasis", parent=body_style, textColor=BRAND_RED, fontName="Helvetica-Bold")

    name = xml_escape(order.name)
    story = [
        Paragraph("GUARANTEE LETTER", title_style),
        Spacer(1, 6 * mm),
        Paragraph(f"Dear {name},", body_style),
        Paragraph(f"Mobile No: {xml_escape(order.phone)}", body_style),
        Spacer(1, 6 * mm),
        Paragraph("Subject: Booking guarantee", emphasis_style),
        Spacer(1, 3 * mm),
        Paragraph(
            f"Dear {name}, your booking for <b>{xml_escape(order.plan_name)}</b> has been confirmed "
            "and your payment has been verified.",
            body_style,
        ),
        Spacer(1, 3 * mm),
        Paragraph(
            "Guarantee: if for any reason your booked rank is not achieved, you will be covered in the "
            "next match or your payment will be refunded.",
            emphasis_style,
        ),
        Spacer(1, 8 * mm),
    ]

    details = Table(
        [
            ["Order ID", order.order_id],
            ["Plan", order.plan_name],
            ["Amount", _format_amount(order.amount)],
            ["Date", ctx.issued_on.strftime("%d %B %Y")],
        ],
        colWidths=[40 * mm, 110 * mm],
    )
    details.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), CARD_BG),
                ("TEXTCOLOR", (0, 0), (-1, -1), TEXT_COLOR),
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("LINEBELOW", (0, 0), (-1, -2), 0.5, LINE_COLOR),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    story += [
        details,
        Spacer(1, 14 * mm),
        Paragraph(f"<b>Thanks, {xml_escape(ctx.brand.title())} Team</b>", body_style),
        Spacer(1, 3 * mm),
        Paragraph(f"Email: {xml_escape(ctx.contact_email)}", body_style),
        Paragraph(f"WhatsApp: {xml_escape(ctx.whatsapp_number)}", body_style),
        Paragraph(f"Phone: {xml_escape(ctx.contact_number)}", body_style),
    ]

    header = _draw_header(ctx)
    doc.build(story, onFirstPage=header, onLaterPages=header)
    return buffer.getvalue()


def certificate_filename(order: Order) -> str:
    return f"Guarantee_Certificate_{order.order_id}.pdf"
