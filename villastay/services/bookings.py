"""Booking read queries for users, hosts and admins."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.errors import NotFoundError
from villastay.models.booking import Booking
from villastay.models.property import Property


async def list_user_bookings(db: AsyncSession, user_id: uuid.UUID) -> list[Booking]:
    """The user's bookings, newest first."""
    result = await db.execute(
        select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all_bookings(
    db: AsyncSession,
    *,
    status: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    """Every booking on the platform (admin), paginated."""
    filters = []
    if status is not None:
        filters.append(Booking.status == status)

    total_result = await db.execute(select(func.count()).select_from(Booking).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Booking).where(*filters).order_by(Booking.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def list_host_property_bookings(db: AsyncSession, host_id: uuid.UUID) -> list[Booking]:
    """Bookings on properties currently owned by the host."""
    result = await db.execute(
        select(Booking)
        .join(Property, Booking.property_id == Property.id)
        .where(Property.host_id == host_id)
        .order_by(Booking.check_in.desc())
    )
    return list(result.scalars().all())


async def get_user_booking(db: AsyncSession, booking_id: uuid.UUID, user_id: uuid.UUID) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id))
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def booking_position(db: AsyncSession, booking: Booking) -> int:
    """1-based position of the booking in creation order, used for invoice numbers."""
    result = await db.execute(
        select(func.count()).select_from(Booking).where(Booking.created_at < booking.created_at)
    )
    return result.scalar_one() + 1
