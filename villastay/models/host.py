"""Host model — property owners who list villas and farmhouses."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villastay.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Host(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A host account. Hosts own properties and may issue property coupons."""

    __tablename__ = "hosts"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    properties: Mapped[list["Property"]] = relationship("Property", back_populates="host", lazy="raise")  # type: ignore[name-defined]  # noqa: F821

    def __repr__(self) -> str:
        return f"<Host id={self.id} email={self.email!r}>"
