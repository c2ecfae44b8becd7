"""Invoice PDF rendering for confirmed bookings."""

from __future__ import annotations

import io
from decimal import Decimal

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from villastay.config import settings
from villastay.models.booking import Booking


def invoice_number(booking: Booking, position: int) -> str:
    """``VS/<year>/<position>`` with the position zero-padded to four digits."""
    year = booking.created_at.year if booking.created_at else booking.check_in.year
    return f"VS/{year}/{position:04d}"


def booking_reference(booking: Booking) -> str:
    """Short customer-facing reference derived from the gateway payment id."""
    payment_id = booking.payment_id or booking.id.hex
    return f"VS-{payment_id.split('_')[-1]}"


def _money(amount: Decimal | None) -> str:
    return f"{settings.payment_currency} {Decimal(amount or 0):,.2f}"


def render_invoice_pdf_bytes(booking: Booking, number: str) -> bytes:
    """Return an A4 invoice PDF for a booking loaded with its user and property."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    _, h = A4

    # Header
    c.setFont("Helvetica-Bold", 18)
    c.drawString(40, h - 60, f"{settings.app_name} Invoice")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 80, f"Invoice No: {number}")
    c.drawString(40, h - 96, f"Booking Ref: {booking_reference(booking)}")
    if booking.created_at:
        c.drawString(40, h - 112, f"Date: {booking.created_at:%d/%m/%Y}")

    # Billed to
    user = booking.user
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 150, "Billed To")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 168, user.full_name if user else "(Not provided)")
    if user:
        c.drawString(40, h - 184, user.email)
        if user.mobile_number:
            c.drawString(40, h - 200, user.mobile_number)

    # Stay
    prop = booking.property
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 238, "Stay")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 256, prop.title if prop else "(Property removed)")
    if prop and prop.address:
        c.drawString(40, h - 272, prop.address)
    c.drawString(40, h - 288, f"Check-in:  {booking.check_in:%d/%m/%Y}")
    c.drawString(40, h - 304, f"Check-out: {booking.check_out:%d/%m/%Y}")
    c.drawString(40, h - 320, f"Nights: {booking.nights}    Guests: {booking.number_of_guests}")

    # Amounts
    y = h - 360
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, y, "Payment")
    c.setFont("Helvetica", 11)
    if booking.coupon_code:
        y -= 18
        c.drawString(40, y, f"Subtotal: {_money(booking.coupon_original_price)}")
        y -= 16
        c.drawString(40, y, f"Coupon {booking.coupon_code}: -{_money(booking.coupon_discount)}")
    y -= 18
    c.setFont("Helvetica-Bold", 11)
    c.drawString(40, y, f"Total Paid: {_money(booking.total_price)}")
    c.setFont("Helvetica", 11)
    y -= 16
    c.drawString(40, y, f"Method: {booking.payment_method or 'N/A'}    Status: {booking.payment_status}")

    # Footer
    c.setFont("Helvetica", 9)
    c.drawString(40, 40, f"Questions? Write to {settings.support_email}")
    c.drawString(40, 26, "This invoice is generated automatically after successful payment.")

    c.showPage()
    c.save()
    return buf.getvalue()
