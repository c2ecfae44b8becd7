"""Payment order bridge — opens a gateway order before the client pays."""

import logging
import time
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from villastay.errors import ConflictError, NotFoundError, ValidationError
from villastay.models.property import Property
from villastay.payments.gateway import GatewayOrder, PaymentGateway, to_minor_units
from villastay.schemas.booking import BookingDetails
from villastay.services.availability import is_available, validate_stay
from villastay.services.pricing import StayQuote, quote_stay, resolve_coupon

logger = logging.getLogger(__name__)


async def _load_property(db: AsyncSession, property_id: uuid.UUID) -> Property:
    prop = await db.get(Property, property_id)
    if prop is None or not prop.is_active:
        raise NotFoundError("Property not found")
    return prop


async def quote(
    db: AsyncSession,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
    coupon_code: str | None = None,
) -> StayQuote:
    """Price a stay, applying ``coupon_code`` if given."""
    prop = await _load_property(db, property_id)
    coupon = await resolve_coupon(db, coupon_code, property_id) if coupon_code else None
    return quote_stay(prop, check_in, check_out, coupon)


async def create_order(
    db: AsyncSession,
    gateway: PaymentGateway,
    *,
    amount: Decimal,
    property_id: uuid.UUID,
    booking_details: BookingDetails,
    user_name: str | None = None,
    property_title: str | None = None,
) -> GatewayOrder:
    """Open a gateway order for ``amount``. No local record is written.

    The availability check here only rejects early; the authoritative check
    happens again when the payment is verified.
    """
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be a positive number")
    check_in, check_out = booking_details.check_in_date, booking_details.check_out_date
    validate_stay(check_in, check_out)

    prop = await _load_property(db, property_id)
    if booking_details.guests > prop.max_guests:
        raise ValidationError(f"This property allows at most {prop.max_guests} guests")

    coupon = booking_details.coupon_applied
    if coupon is not None:
        # Surfaces expired or out-of-scope coupons before the user pays
        await resolve_coupon(db, coupon.code, property_id)

    if not await is_available(db, property_id, check_in, check_out):
        raise ConflictError("Property is not available for the selected dates")

    notes = {
        "user_name": user_name,
        "property_title": property_title or prop.title,
        "property_id": str(property_id),
        "check_in_date": check_in.strftime("%d/%m/%y"),
        "check_out_date": check_out.strftime("%d/%m/%y"),
        "guests": booking_details.guests,
        "nights": booking_details.nights,
        "coupon_code": coupon.code if coupon else None,
        "coupon_discount": coupon.discount if coupon else 0,
    }
    receipt = f"booking_{int(time.time() * 1000)}"
    order = await gateway.create_order(to_minor_units(amount), receipt, notes)
    logger.info("Opened order %s for property %s (%s %s)", order.id, property_id, order.amount, order.currency)
    return order
