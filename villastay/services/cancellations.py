"""Cancellation and refund engine.

``confirmed -> cancelled`` with the payment either ``refunded`` (non-zero
refund went through the gateway) or ``not-eligible-for-refund``. A failed
refund aborts the whole cancellation, so the ledger entry is released if and
only if the booking is actually cancelled.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.database import naive_utcnow
from villastay.errors import NotFoundError, StateError, ValidationError
from villastay.models.booking import Booking
from villastay.models.property import Property
from villastay.models.refund import Refund
from villastay.payments.gateway import PaymentGateway, PaymentGatewayError, from_minor_units, to_minor_units
from villastay.services.locks import PropertyLocks, property_locks

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "unknown"


@dataclass
class CancellationResult:
    booking: Booking
    refund: Refund | None = None


async def _get_owned_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Booking:
    # Ownership is part of the lookup: someone else's booking is simply not found
    query = select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def cancel_booking(
    db: AsyncSession,
    gateway: PaymentGateway,
    *,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    refund_amount: Decimal,
    cancellation_fee: Decimal,
    reason: str | None = None,
    locks: PropertyLocks = property_locks,
) -> CancellationResult:
    """Cancel one of ``user_id``'s bookings, refunding ``refund_amount`` if non-zero.

    Raises:
        NotFoundError: booking (for this user) or its property is missing.
        StateError: booking already cancelled or not in a cancellable state.
        ValidationError: negative amounts or a refund larger than the amount paid.
        ProviderError: the gateway refund failed; nothing was changed.
    """
    if refund_amount < 0 or cancellation_fee < 0:
        raise ValidationError("Refund amount and cancellation fee cannot be negative")

    booking = await _get_owned_booking(db, booking_id, user_id)
    if booking.property_id is None:
        raise NotFoundError("Property not found")

    async with locks.hold(booking.property_id):
        try:
            result = await _cancel(
                db,
                gateway,
                booking_id=booking_id,
                user_id=user_id,
                refund_amount=refund_amount,
                cancellation_fee=cancellation_fee,
                reason=reason,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    await db.refresh(result.booking)
    if result.refund is not None:
        await db.refresh(result.refund)
    logger.info(
        "Booking %s cancelled (payment status %s, refund %s)",
        result.booking.id,
        result.booking.payment_status,
        result.refund.refund_id if result.refund else None,
    )
    return result


async def _cancel(
    db: AsyncSession,
    gateway: PaymentGateway,
    *,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    refund_amount: Decimal,
    cancellation_fee: Decimal,
    reason: str | None,
) -> CancellationResult:
    booking = await _get_owned_booking(db, booking_id, user_id, for_update=True)
    if booking.status == "cancelled":
        raise StateError("Booking is already cancelled")
    if booking.status != "confirmed":
        raise StateError(f"Only confirmed bookings can be cancelled (status: {booking.status})")

    result = await db.execute(
        select(Property)
        .where(Property.id == booking.property_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    prop = result.scalar_one_or_none()
    if prop is None:
        raise NotFoundError("Property not found")

    if refund_amount > booking.total_price:
        raise ValidationError("Refund amount cannot exceed the amount paid")

    refund = None
    if refund_amount > 0:
        if not booking.payment_id:
            raise StateError("Booking has no captured payment to refund")
        notes = {
            "booking_id": str(booking.id),
            "cancellation_fee": str(cancellation_fee),
            "reason": reason or "Booking cancelled by user",
        }
        gateway_refund = await gateway.refund(booking.payment_id, to_minor_units(refund_amount), notes)
        if gateway_refund.status == "failed":
            logger.warning("Refund %s for booking %s failed at the gateway", gateway_refund.id, booking.id)
            raise PaymentGatewayError("Refund failed at the payment provider", detail=gateway_refund.id)

        refund = Refund(
            booking_id=booking.id,
            property_id=prop.id,
            user_id=booking.user_id,
            refund_id=gateway_refund.id,
            payment_id=gateway_refund.payment_id,
            amount=from_minor_units(gateway_refund.amount),
            currency=gateway_refund.currency,
            status=gateway_refund.status,
            notes=notes,
            gateway_created_at=gateway_refund.created_at,
            processed_at=gateway_refund.processed_at,
            reference_id=gateway_refund.reference_id,
        )
        db.add(refund)
        booking.payment_status = "refunded"
    else:
        booking.payment_status = "not-eligible-for-refund"

    booking.status = "cancelled"
    booking.cancellation_fee = cancellation_fee
    booking.cancelled_at = naive_utcnow()
    if not booking.payment_method:
        booking.payment_method = DEFAULT_PAYMENT_METHOD

    entry = next((e for e in prop.booked_dates if e.booking_id == booking.id), None)
    if entry is not None:
        prop.booked_dates.remove(entry)
    else:
        logger.warning("Booking %s had no ledger entry on property %s", booking.id, prop.id)

    await db.flush()
    return CancellationResult(booking=booking, refund=refund)
