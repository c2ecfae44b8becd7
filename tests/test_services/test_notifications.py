"""Tests for booking emails and invoice rendering."""

import logging
import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from villastay.services.invoices import booking_reference, invoice_number, render_invoice_pdf_bytes
from villastay.services.notifications import BookingNotifier, OutgoingEmail, RefundNotice, SmtpMailer

pytestmark = pytest.mark.asyncio

CHECK_IN = date(2024, 6, 10)
CHECK_OUT = date(2024, 6, 12)


@pytest.fixture
def mailer() -> AsyncMock:
    return AsyncMock(spec=SmtpMailer)


class TestBookingNotifier:
    async def test_confirmation_is_sent_with_invoice(self, reserve, session_factory, mailer, test_user) -> None:
        booking = await reserve(CHECK_IN, CHECK_OUT)

        await BookingNotifier(session_factory, mailer).send_booking_confirmation(booking.id)

        mailer.send.assert_awaited_once()
        email = mailer.send.await_args.args[0]
        assert email.to == test_user.email
        assert str(booking.id) in email.subject
        assert "Test Villa" in email.body
        assert "10/06/2024" in email.body
        assert "10,000.00" in email.body
        [(filename, content, mime)] = email.attachments
        assert filename.startswith("invoice-VS-")
        assert mime == "application/pdf"
        assert content.startswith(b"%PDF")

    async def test_cancellation_mentions_refund(self, reserve, session_factory, mailer) -> None:
        booking = await reserve(CHECK_IN, CHECK_OUT)
        notice = RefundNotice(amount=Decimal("8000.00"), status="processed", reference_id="ARN0001")

        await BookingNotifier(session_factory, mailer).send_booking_cancellation(booking.id, notice)

        email = mailer.send.await_args.args[0]
        assert "cancelled" in email.subject
        assert "8,000.00" in email.body
        assert "ARN0001" in email.body
        assert email.attachments == ()

    async def test_cancellation_without_refund_uses_policy_text(self, reserve, session_factory, mailer) -> None:
        booking = await reserve(CHECK_IN, CHECK_OUT)
        await BookingNotifier(session_factory, mailer).send_booking_cancellation(booking.id)
        email = mailer.send.await_args.args[0]
        assert "cancellation policy" in email.body

    async def test_mailer_failure_is_logged_not_raised(self, reserve, session_factory, mailer, caplog) -> None:
        booking = await reserve(CHECK_IN, CHECK_OUT)
        mailer.send.side_effect = ConnectionRefusedError("smtp down")

        with caplog.at_level(logging.ERROR, logger="villastay.services.notifications"):
            await BookingNotifier(session_factory, mailer).send_booking_confirmation(booking.id)

        assert "Error sending booking confirmation" in caplog.text

    async def test_missing_booking_sends_nothing(self, session_factory, mailer) -> None:
        await BookingNotifier(session_factory, mailer).send_booking_confirmation(uuid.uuid4())
        mailer.send.assert_not_awaited()

    async def test_smtp_mailer_skips_when_unconfigured(self) -> None:
        with patch("villastay.services.notifications.settings") as mock_settings:
            mock_settings.smtp_host = ""
            with patch("villastay.services.notifications.smtplib.SMTP") as smtp:
                await SmtpMailer().send(OutgoingEmail(to="a@b.c", subject="s", body="b"))
                smtp.assert_not_called()


class TestInvoices:
    async def test_invoice_number_and_reference(self, reserve) -> None:
        booking = await reserve(CHECK_IN, CHECK_OUT)
        assert invoice_number(booking, 7) == f"VS/{booking.created_at.year}/0007"
        assert booking_reference(booking) == f"VS-{booking.payment_id.split('_')[-1]}"

    async def test_render_returns_pdf(self, reserve) -> None:
        booking = await reserve(CHECK_IN, CHECK_OUT)
        pdf = render_invoice_pdf_bytes(booking, "VS/2024/0001")
        assert pdf.startswith(b"%PDF")
