"""Booking reservation engine — turns a verified payment into a confirmed booking.

Flow for one verification request::

    quoted -> verifying -> confirmed   (booking + ledger entry committed together)
                        -> rejected    (nothing written)

The availability re-check, the booking insert and the ledger append run under
the property's lock and commit as one transaction, so two overlapping
reservations for the same property can never both succeed.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.database import naive_utcnow
from villastay.errors import AuthenticityError, ConflictError, NotFoundError, ValidationError
from villastay.models.booking import Booking
from villastay.models.property import BookedDate, Property
from villastay.payments.gateway import GatewayPayment, PaymentGateway, to_minor_units
from villastay.schemas.booking import BookingDetails
from villastay.services.availability import find_conflicting_entry, validate_stay
from villastay.services.coupons import record_coupon_use
from villastay.services.locks import PropertyLocks, property_locks
from villastay.services.pricing import apply_discount, resolve_coupon

logger = logging.getLogger(__name__)

PAID_PAYMENT_STATUSES = frozenset({"authorized", "captured"})


def _check_payment(payment: GatewayPayment, order_id: str, expected_minor: int) -> None:
    if payment.status not in PAID_PAYMENT_STATUSES:
        raise AuthenticityError(f"Payment has not been completed (status: {payment.status})")
    if payment.order_id and payment.order_id != order_id:
        raise AuthenticityError("Payment does not belong to this order")
    if payment.amount != expected_minor:
        raise AuthenticityError("Paid amount does not match the booking total")


async def verify_and_reserve(
    db: AsyncSession,
    gateway: PaymentGateway,
    *,
    order_id: str,
    payment_id: str,
    signature: str,
    property_id: uuid.UUID,
    user_id: uuid.UUID,
    booking_details: BookingDetails,
    locks: PropertyLocks = property_locks,
) -> Booking:
    """Verify a payment and atomically reserve the property for the stay.

    Raises:
        AuthenticityError: signature mismatch, the gateway disagrees about the payment,
            or the claimed coupon discount does not match the coupon.
        ProviderError: the gateway lookup failed.
        NotFoundError: the property or the claimed coupon does not exist.
        ConflictError: the dates were taken meanwhile, the payment was already used,
            or the coupon belongs to another property.
        ValidationError: malformed stay details or a coupon that is no longer valid.
    """
    if not gateway.verify_signature(order_id, payment_id, signature):
        logger.warning("Signature mismatch for order %s / payment %s", order_id, payment_id)
        raise AuthenticityError("Payment verification failed: Invalid signature")

    total_price = booking_details.total_price
    if total_price is None:
        raise ValidationError("Total price is required")
    check_in, check_out = booking_details.check_in_date, booking_details.check_out_date
    nights = validate_stay(check_in, check_out)

    payment = await gateway.fetch_payment(payment_id)
    _check_payment(payment, order_id, to_minor_units(total_price))

    async with locks.hold(property_id):
        try:
            booking = await _reserve(
                db,
                order_id=order_id,
                payment=payment,
                signature=signature,
                property_id=property_id,
                user_id=user_id,
                booking_details=booking_details,
                nights=nights,
            )
            await db.commit()
        except IntegrityError:
            # Same payment id committed by a reservation on another property
            await db.rollback()
            logger.warning("Payment %s was used by a concurrent reservation", payment_id)
            raise ConflictError("This payment has already been used for a booking") from None
        except Exception:
            await db.rollback()
            raise

    await db.refresh(booking)
    logger.info(
        "Booking %s confirmed: property %s, %s to %s, payment %s",
        booking.id,
        property_id,
        check_in,
        check_out,
        payment.id,
    )
    return booking


async def _reserve(
    db: AsyncSession,
    *,
    order_id: str,
    payment: GatewayPayment,
    signature: str,
    property_id: uuid.UUID,
    user_id: uuid.UUID,
    booking_details: BookingDetails,
    nights: int,
) -> Booking:
    result = await db.execute(
        select(Property)
        .where(Property.id == property_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    prop = result.scalar_one_or_none()
    if prop is None:
        raise NotFoundError("Property not found")
    if booking_details.guests > prop.max_guests:
        raise ValidationError(f"This property allows at most {prop.max_guests} guests")

    used = await db.execute(select(Booking.id).where(Booking.payment_id == payment.id))
    if used.scalar_one_or_none() is not None:
        raise ConflictError("This payment has already been used for a booking")

    check_in, check_out = booking_details.check_in_date, booking_details.check_out_date
    if await find_conflicting_entry(db, property_id, check_in, check_out) is not None:
        # The money was taken but the stay cannot be honoured: needs a manual refund
        logger.error(
            "Payment %s captured but property %s is taken for %s to %s",
            payment.id,
            property_id,
            check_in,
            check_out,
        )
        raise ConflictError("Property is not available for the selected dates")

    total_price = booking_details.total_price
    booking = Booking(
        id=uuid.uuid4(),
        property_id=prop.id,
        user_id=user_id,
        host_id=prop.host_id,
        check_in=check_in,
        check_out=check_out,
        number_of_guests=booking_details.guests,
        nights=nights,
        total_price=total_price,
        status="confirmed",
        payment_status="paid",
        payment_order_id=order_id,
        payment_id=payment.id,
        payment_signature=signature,
        payment_method=payment.method,
        payment_date=naive_utcnow(),
    )

    claimed = booking_details.coupon_applied
    if claimed is not None:
        coupon = await resolve_coupon(db, claimed.code, prop.id)
        original_price = total_price + claimed.discount
        if apply_discount(original_price, coupon).discount_amount != claimed.discount:
            raise AuthenticityError("Coupon discount does not match the coupon terms")
        if coupon.applies_to == "platform" and not await record_coupon_use(db, coupon.code):
            raise ValidationError("Coupon is not currently valid")
        booking.coupon_code = coupon.code
        booking.coupon_discount = claimed.discount
        booking.coupon_original_price = original_price

    db.add(booking)
    await db.flush()

    prop.booked_dates.append(BookedDate(booking_id=booking.id, check_in=check_in, check_out=check_out))
    await db.flush()
    return booking
