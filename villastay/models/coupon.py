"""Coupon models — platform-wide coupons and host coupons scoped to one property."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villastay.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Coupon(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Platform coupon created by an admin, usable on any property."""

    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    max_discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))  # 0 = uncapped
    min_purchase: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    valid_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    terms_and_conditions: Mapped[str] = mapped_column(Text, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    max_usage: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = unlimited

    __table_args__ = (
        CheckConstraint("valid_until > valid_from", name="ck_coupons_validity"),
        CheckConstraint("discount_percentage >= 0 AND discount_percentage <= 100", name="ck_coupons_percentage"),
    )

    def __repr__(self) -> str:
        return f"<Coupon(code={self.code!r}, discount={self.discount_percentage}%)>"


class HostCoupon(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Coupon issued by a host, valid only on the property it is bound to."""

    __tablename__ = "host_coupons"

    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    host_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hosts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    valid_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    property: Mapped["Property"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("valid_until > valid_from", name="ck_host_coupons_validity"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100", name="ck_host_coupons_percentage"
        ),
    )

    def __repr__(self) -> str:
        return f"<HostCoupon(code={self.code!r}, property_id={self.property_id})>"
