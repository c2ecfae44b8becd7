"""Shared API dependencies — single import point for all routers.

Re-exports database session and authentication dependencies so that router
modules can import everything they need from one place::

    from villastay.api.deps import get_db, get_current_user
"""

from fastapi import Request

from villastay.auth.dependencies import (
    get_current_host,
    get_current_user,
    require_admin,
)
from villastay.database import async_session_factory, get_db
from villastay.payments.gateway import PaymentGateway, get_razorpay_client
from villastay.services.notifications import BookingNotifier


def get_payment_gateway(request: Request) -> PaymentGateway:
    """The process-wide payment gateway client, created on first use."""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        gateway = get_razorpay_client()
        request.app.state.payment_gateway = gateway
    return gateway


def get_notifier(request: Request) -> BookingNotifier:
    """The process-wide booking notifier, created on first use."""
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        notifier = BookingNotifier(async_session_factory)
        request.app.state.notifier = notifier
    return notifier


__all__ = [
    "get_db",
    "get_current_user",
    "get_current_host",
    "require_admin",
    "get_payment_gateway",
    "get_notifier",
]
