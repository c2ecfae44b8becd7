"""Pricing and coupon resolution.

Coupon lookup tries the platform registry first and falls back to host
coupons, which only apply to the property they were issued for. Validity is
always evaluated at the moment of use.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.database import naive_utcnow
from villastay.errors import ConflictError, NotFoundError, ValidationError
from villastay.models.coupon import Coupon, HostCoupon
from villastay.models.property import Property
from villastay.services.availability import validate_stay

_CENT = Decimal("0.01")
_ZERO = Decimal("0")

# Nights starting on Friday or Saturday are charged the weekend price
WEEKEND_NIGHTS = frozenset({4, 5})


@dataclass(frozen=True)
class ResolvedCoupon:
    code: str
    discount_percentage: Decimal
    applies_to: str  # platform, property
    max_discount: Decimal = _ZERO
    min_purchase: Decimal = _ZERO
    coupon_id: uuid.UUID | None = None


@dataclass(frozen=True)
class DiscountResult:
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal


@dataclass(frozen=True)
class StayQuote:
    nights: int
    base_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    coupon_code: str | None = None


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_coupon_currently_valid(coupon: Coupon | HostCoupon, now: datetime | None = None) -> bool:
    """Active, inside ``[valid_from, valid_until)`` and, for platform coupons, under the usage cap."""
    now = now or naive_utcnow()
    if not coupon.is_active:
        return False
    if not (coupon.valid_from <= now < coupon.valid_until):
        return False
    max_usage = getattr(coupon, "max_usage", None)
    if max_usage is not None and coupon.usage_count >= max_usage:
        return False
    return True


async def resolve_coupon(
    db: AsyncSession,
    code: str,
    property_id: uuid.UUID | None,
    now: datetime | None = None,
) -> ResolvedCoupon:
    """Find a currently valid coupon for ``code`` usable on ``property_id``.

    Raises:
        NotFoundError: no coupon in either registry has this code.
        ConflictError: a host coupon exists but is bound to another property.
        ValidationError: the coupon exists but is inactive, expired or used up.
    """
    code = normalize_code(code)

    result = await db.execute(select(Coupon).where(Coupon.code == code))
    platform_coupon = result.scalar_one_or_none()
    if platform_coupon is not None:
        if not is_coupon_currently_valid(platform_coupon, now):
            raise ValidationError("Coupon is not currently valid")
        return ResolvedCoupon(
            code=platform_coupon.code,
            discount_percentage=Decimal(platform_coupon.discount_percentage),
            applies_to="platform",
            max_discount=Decimal(platform_coupon.max_discount or 0),
            min_purchase=Decimal(platform_coupon.min_purchase or 0),
            coupon_id=platform_coupon.id,
        )

    result = await db.execute(select(HostCoupon).where(HostCoupon.code == code))
    host_coupon = result.scalar_one_or_none()
    if host_coupon is None:
        raise NotFoundError("Coupon not found")
    if property_id is None or host_coupon.property_id != property_id:
        raise ConflictError("Coupon is not valid for this property")
    if not is_coupon_currently_valid(host_coupon, now):
        raise ValidationError("Coupon is not currently valid")
    return ResolvedCoupon(
        code=host_coupon.code,
        discount_percentage=Decimal(host_coupon.discount_percentage),
        applies_to="property",
        coupon_id=host_coupon.id,
    )


def apply_discount(base_amount: Decimal, coupon: ResolvedCoupon | None) -> DiscountResult:
    """Apply a percentage coupon, honouring the cap and never going below zero.

    ``original_amount == final_amount + discount_amount`` always holds.
    """
    base = Decimal(base_amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    if coupon is None or base < coupon.min_purchase:
        return DiscountResult(original_amount=base, discount_amount=_ZERO.quantize(_CENT), final_amount=base)

    discount = (base * coupon.discount_percentage / 100).quantize(_CENT, rounding=ROUND_HALF_UP)
    if coupon.max_discount > 0 and discount > coupon.max_discount:
        discount = coupon.max_discount.quantize(_CENT)
    discount = min(discount, base)
    return DiscountResult(original_amount=base, discount_amount=discount, final_amount=base - discount)


def nightly_rates(prop: Property, check_in: date, check_out: date) -> list[Decimal]:
    nights = validate_stay(check_in, check_out)
    rates = []
    for offset in range(nights):
        night = check_in + timedelta(days=offset)
        rates.append(Decimal(prop.weekend_price if night.weekday() in WEEKEND_NIGHTS else prop.price))
    return rates


def quote_stay(
    prop: Property,
    check_in: date,
    check_out: date,
    coupon: ResolvedCoupon | None = None,
) -> StayQuote:
    """Price a stay at ``prop`` and apply an already resolved coupon."""
    rates = nightly_rates(prop, check_in, check_out)
    discount = apply_discount(sum(rates, _ZERO), coupon)
    return StayQuote(
        nights=len(rates),
        base_amount=discount.original_amount,
        discount_amount=discount.discount_amount,
        final_amount=discount.final_amount,
        coupon_code=coupon.code if coupon else None,
    )
