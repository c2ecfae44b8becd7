"""Booking model — a confirmed (or since cancelled) stay at a property."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villastay.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation of a property by a user for ``[check_in, check_out)``.

    Bookings are only ever created already confirmed and paid. The ``payment_*``
    columns are written once at confirmation and never touched again.
    """

    __tablename__ = "bookings"

    property_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Copy of the property's host at creation time
    host_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("hosts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    nights: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default="pending",
        index=True,
    )  # pending, confirmed, cancelled, completed
    payment_status: Mapped[str] = mapped_column(
        String(50),
        default="pending",
    )  # pending, paid, refunded, not-eligible-for-refund

    # Payment details
    payment_order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    payment_signature: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Coupon details
    coupon_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    coupon_discount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    coupon_original_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    cancellation_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    property: Mapped["Property | None"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    user: Mapped["User"] = relationship(back_populates="bookings", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    refunds: Mapped[list["Refund"]] = relationship(back_populates="booking", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
        Index("ix_bookings_check_in", "check_in"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, property_id={self.property_id}, user_id={self.user_id}, status={self.status})>"
