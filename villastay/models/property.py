"""Property model — villas and farmhouses, with their booked-dates ledger."""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villastay.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Property(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A bookable villa or farmhouse listed by a host."""

    __tablename__ = "properties"

    host_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("hosts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    weekend_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_guests: Mapped[int] = mapped_column(default=1)
    street: Mapped[str | None] = mapped_column(String(255), default=None)
    city: Mapped[str | None] = mapped_column(String(100), default=None)
    state: Mapped[str | None] = mapped_column(String(100), default=None)
    postal_code: Mapped[str | None] = mapped_column(String(20), default=None)
    status: Mapped[str] = mapped_column(String(50), default="approved")  # pending, approved, rejected
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    host: Mapped["Host | None"] = relationship(back_populates="properties", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    booked_dates: Mapped[list["BookedDate"]] = relationship(
        back_populates="property",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="BookedDate.check_in",
    )

    @property
    def address(self) -> str:
        parts = [self.street, self.city, self.state]
        line = ", ".join(p for p in parts if p)
        if self.postal_code:
            line = f"{line} - {self.postal_code}" if line else self.postal_code
        return line

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title!r})>"


class BookedDate(UUIDPrimaryKeyMixin, Base):
    """One ledger entry: the half-open range ``[check_in, check_out)`` held by a booking."""

    __tablename__ = "property_booked_dates"

    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)

    property: Mapped["Property"] = relationship(back_populates="booked_dates")

    def __repr__(self) -> str:
        return f"<BookedDate(booking_id={self.booking_id}, {self.check_in}..{self.check_out})>"
