"""Coupon service — platform and host coupon administration."""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.errors import ConflictError, NotFoundError, ValidationError
from villastay.models.coupon import Coupon, HostCoupon
from villastay.models.host import Host
from villastay.models.property import Property
from villastay.services.pricing import normalize_code

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_coupon_terms(discount_percentage: Decimal, valid_from: datetime, valid_until: datetime) -> None:
    if not (0 <= discount_percentage <= 100):
        raise ValidationError("Discount percentage must be between 0 and 100")
    if valid_until <= valid_from:
        raise ValidationError("Valid until date must be after valid from date")


async def _ensure_code_unused(db: AsyncSession, code: str) -> None:
    """Codes are unique across both registries so lookup is never ambiguous."""
    for model in (Coupon, HostCoupon):
        result = await db.execute(select(model.id).where(model.code == code))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("Coupon with this code already exists")


async def create_coupon(
    db: AsyncSession,
    *,
    code: str,
    discount_percentage: Decimal,
    valid_from: datetime,
    valid_until: datetime,
    min_purchase: Decimal = Decimal("0"),
    max_discount: Decimal = Decimal("0"),
    description: str = "",
    terms: str | list[str] = "",
    max_usage: int | None = None,
    is_active: bool = True,
) -> Coupon:
    """Create a platform-wide coupon."""
    code = normalize_code(code)
    valid_from, valid_until = _to_naive_utc(valid_from), _to_naive_utc(valid_until)
    _check_coupon_terms(discount_percentage, valid_from, valid_until)
    await _ensure_code_unused(db, code)

    coupon = Coupon(
        code=code,
        discount_percentage=discount_percentage,
        valid_from=valid_from,
        valid_until=valid_until,
        min_purchase=min_purchase,
        max_discount=max_discount,
        description=description,
        terms_and_conditions=", ".join(terms) if isinstance(terms, list) else terms,
        max_usage=max_usage,
        is_active=is_active,
        usage_count=0,
    )
    db.add(coupon)
    await db.flush()
    await db.refresh(coupon)
    logger.info("Created coupon %s (%s%%)", coupon.code, coupon.discount_percentage)
    return coupon


async def list_coupons(db: AsyncSession) -> list[Coupon]:
    result = await db.execute(select(Coupon).order_by(Coupon.created_at.desc()))
    return list(result.scalars().all())


async def set_coupon_active(db: AsyncSession, coupon_id: uuid.UUID, is_active: bool) -> Coupon:
    coupon = await db.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Coupon not found")
    coupon.is_active = is_active
    await db.flush()
    logger.info("Coupon %s %s", coupon.code, "activated" if is_active else "deactivated")
    return coupon


async def delete_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> None:
    coupon = await db.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Coupon not found")
    await db.delete(coupon)
    await db.flush()
    logger.info("Deleted coupon %s", coupon.code)


async def record_coupon_use(db: AsyncSession, code: str) -> bool:
    """Bump a platform coupon's usage counter unless its usage cap is reached.

    Returns False when no counter was bumped. Host coupons are not counted.
    """
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.code == normalize_code(code),
            or_(Coupon.max_usage.is_(None), Coupon.usage_count < Coupon.max_usage),
        )
        .values(usage_count=Coupon.usage_count + 1)
    )
    return result.rowcount > 0


async def create_host_coupon(
    db: AsyncSession,
    host: Host,
    *,
    code: str,
    description: str,
    discount_percentage: Decimal,
    property_id: uuid.UUID,
    valid_from: datetime,
    valid_until: datetime,
    is_active: bool = True,
) -> HostCoupon:
    """Create a coupon bound to one of the host's own properties."""
    prop = await db.get(Property, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    if prop.host_id != host.id:
        raise ConflictError("You can only create coupons for your own properties")

    code = normalize_code(code)
    valid_from, valid_until = _to_naive_utc(valid_from), _to_naive_utc(valid_until)
    _check_coupon_terms(discount_percentage, valid_from, valid_until)
    await _ensure_code_unused(db, code)

    coupon = HostCoupon(
        code=code,
        description=description,
        discount_percentage=discount_percentage,
        property_id=property_id,
        host_id=host.id,
        valid_from=valid_from,
        valid_until=valid_until,
        is_active=is_active,
    )
    db.add(coupon)
    await db.flush()
    await db.refresh(coupon)
    logger.info("Host %s created coupon %s for property %s", host.id, coupon.code, property_id)
    return coupon


async def list_host_coupons(db: AsyncSession, host: Host) -> list[HostCoupon]:
    result = await db.execute(
        select(HostCoupon).where(HostCoupon.host_id == host.id).order_by(HostCoupon.created_at.desc())
    )
    return list(result.scalars().all())
