"""Booking notifications — confirmation and cancellation emails.

Notifications run after the booking change is committed, from a background
task with their own database session. They never raise: a failure is logged
and the booking stays exactly as it is.
"""

import asyncio
import logging
import smtplib
import uuid
from dataclasses import dataclass
from decimal import Decimal
from email.message import EmailMessage

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from villastay.config import settings
from villastay.models.booking import Booking
from villastay.services.bookings import booking_position
from villastay.services.invoices import invoice_number, render_invoice_pdf_bytes

logger = logging.getLogger(__name__)

TEMPLATES = {
    "booking_confirmation": {
        "subject": "Your {app_name} booking is confirmed - {booking_id}",
        "body": (
            "Dear {guest_name},\n\n"
            "Your booking at {property_name} has been confirmed.\n\n"
            "Booking Details:\n"
            "- Booking ID: {booking_id}\n"
            "- Property: {property_name}\n"
            "- Location: {location}\n"
            "- Check-in: {check_in}\n"
            "- Check-out: {check_out}\n"
            "- Guests: {num_guests}\n"
            "- Amount Paid: {currency} {total_price}\n\n"
            "Your invoice is attached.\n\n"
            "Need help? Email {support_email}\n\n"
            "Warm regards,\nTeam {app_name}"
        ),
    },
    "booking_cancellation": {
        "subject": "Your {app_name} booking has been cancelled - {booking_id}",
        "body": (
            "Dear {guest_name},\n\n"
            "Your booking at {property_name} ({check_in} to {check_out}) "
            "has been cancelled.\n\n"
            "{refund_section}\n\n"
            "Need help? Email {support_email}\n\n"
            "Warm regards,\nTeam {app_name}"
        ),
    },
}

NO_REFUND_TEXT = (
    "If any refund is applicable, it will be processed as per our cancellation policy. "
    "You will receive a separate confirmation once the refund (if eligible) is initiated."
)


@dataclass(frozen=True)
class RefundNotice:
    amount: Decimal
    status: str
    reference_id: str | None = None


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    body: str
    attachments: tuple[tuple[str, bytes, str], ...] = ()


class SmtpMailer:
    """Sends mail through the configured SMTP server in a worker thread."""

    async def send(self, email: OutgoingEmail) -> None:
        if not settings.smtp_host:
            logger.info("SMTP not configured, skipping email %r to %s", email.subject, email.to)
            return
        await asyncio.to_thread(self._send_sync, email)

    def _send_sync(self, email: OutgoingEmail) -> None:
        msg = EmailMessage()
        msg["From"] = settings.mail_from
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content(email.body)
        for filename, content, mime in email.attachments:
            maintype, subtype = (mime.split("/", 1) + ["octet-stream"])[:2]
            msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(msg)


def _template_vars(booking: Booking) -> dict[str, str]:
    prop = booking.property
    user = booking.user
    return {
        "app_name": settings.app_name,
        "support_email": settings.support_email,
        "booking_id": str(booking.id),
        "guest_name": user.first_name if user else "Guest",
        "property_name": prop.title if prop else "your property",
        "location": (prop.address if prop else "") or "N/A",
        "check_in": f"{booking.check_in:%d/%m/%Y}",
        "check_out": f"{booking.check_out:%d/%m/%Y}",
        "num_guests": str(booking.number_of_guests),
        "total_price": f"{booking.total_price:,.2f}",
        "currency": settings.payment_currency,
    }


def compose_confirmation(booking: Booking) -> tuple[str, str]:
    variables = _template_vars(booking)
    template = TEMPLATES["booking_confirmation"]
    return template["subject"].format(**variables), template["body"].format(**variables)


def compose_cancellation(booking: Booking, refund: RefundNotice | None) -> tuple[str, str]:
    variables = _template_vars(booking)
    if refund is not None:
        variables["refund_section"] = (
            "Refund Details:\n"
            f"- Amount: {settings.payment_currency} {refund.amount:,.2f}\n"
            f"- Status: {refund.status}\n"
            f"- Reference ID: {refund.reference_id or 'N/A'}"
        )
    else:
        variables["refund_section"] = NO_REFUND_TEXT
    template = TEMPLATES["booking_cancellation"]
    return template["subject"].format(**variables), template["body"].format(**variables)


class BookingNotifier:
    """Best-effort booking emails. Every public method swallows its own errors."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], mailer: SmtpMailer | None = None) -> None:
        self.session_factory = session_factory
        self.mailer = mailer or SmtpMailer()

    async def _load(self, db: AsyncSession, booking_id: uuid.UUID) -> Booking | None:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        return result.scalar_one_or_none()

    async def send_booking_confirmation(self, booking_id: uuid.UUID) -> None:
        try:
            async with self.session_factory() as db:
                booking = await self._load(db, booking_id)
                if booking is None or booking.user is None:
                    logger.warning("Confirmation skipped: booking %s not found", booking_id)
                    return
                number = invoice_number(booking, await booking_position(db, booking))
                subject, body = compose_confirmation(booking)
                pdf = render_invoice_pdf_bytes(booking, number)
                email = OutgoingEmail(
                    to=booking.user.email,
                    subject=subject,
                    body=body,
                    attachments=((f"invoice-{number.replace('/', '-')}.pdf", pdf, "application/pdf"),),
                )
            await self.mailer.send(email)
            logger.info("Booking confirmation sent for %s", booking_id)
        except Exception:
            logger.exception("Error sending booking confirmation for %s", booking_id)

    async def send_booking_cancellation(self, booking_id: uuid.UUID, refund: RefundNotice | None = None) -> None:
        try:
            async with self.session_factory() as db:
                booking = await self._load(db, booking_id)
                if booking is None or booking.user is None:
                    logger.warning("Cancellation notice skipped: booking %s not found", booking_id)
                    return
                subject, body = compose_cancellation(booking, refund)
                email = OutgoingEmail(to=booking.user.email, subject=subject, body=body)
            await self.mailer.send(email)
            logger.info("Booking cancellation sent for %s", booking_id)
        except Exception:
            logger.exception("Error sending booking cancellation for %s", booking_id)
