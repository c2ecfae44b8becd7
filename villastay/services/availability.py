"""Availability checks against a property's booked-dates ledger.

Date ranges are half-open, ``[check_in, check_out)``: a stay that checks out on
the 12th does not conflict with one that checks in on the 12th.
"""

import uuid
from collections.abc import Iterable
from datetime import date
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.errors import ValidationError
from villastay.models.booking import Booking
from villastay.models.property import BookedDate


class DateRange(Protocol):
    check_in: date
    check_out: date


def validate_stay(check_in: date, check_out: date) -> int:
    """Return the number of nights, rejecting empty or inverted ranges."""
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")
    return (check_out - check_in).days


def ranges_conflict(a_in: date, a_out: date, b_in: date, b_out: date) -> bool:
    """True when two half-open date ranges share at least one night."""
    return a_in < b_out and a_out > b_in


def first_conflict(entries: Iterable[DateRange], check_in: date, check_out: date) -> DateRange | None:
    """Return the first entry overlapping ``[check_in, check_out)``, if any."""
    for entry in entries:
        if ranges_conflict(entry.check_in, entry.check_out, check_in, check_out):
            return entry
    return None


async def find_conflicting_entry(
    db: AsyncSession,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> BookedDate | None:
    """Fetch a ledger entry of a non-cancelled booking that overlaps the range."""
    result = await db.execute(
        select(BookedDate)
        .join(Booking, BookedDate.booking_id == Booking.id)
        .where(
            BookedDate.property_id == property_id,
            Booking.status != "cancelled",
            BookedDate.check_out > check_in,
        )
        .order_by(BookedDate.check_in)
    )
    return first_conflict(result.scalars(), check_in, check_out)


async def is_available(
    db: AsyncSession,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> bool:
    """Whether the property can be booked for ``[check_in, check_out)``."""
    validate_stay(check_in, check_out)
    return await find_conflicting_entry(db, property_id, check_in, check_out) is None
