"""Property model definition."""

from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Integer, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base
from .base import TimestampMixin, enum_values


class PropertyStatus(str, Enum):
    """Property listing status enumeration."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class Property(Base, TimestampMixin):
    """A rentable listing owned and managed by a single host."""

    __tablename__ = "properties"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Owning host; user accounts live in the identity service
    host_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[PropertyStatus] = mapped_column(
        SAEnum(PropertyStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=PropertyStatus.ACTIVE,
        index=True
    )

    __table_args__ = (
        CheckConstraint("price_per_night >= 0", name="ck_property_price_non_negative"),
        CheckConstraint("max_guests > 0", name="ck_property_max_guests_positive"),
        CheckConstraint("length(title) > 0", name="ck_property_title_not_empty"),
    )

    def __repr__(self) -> str:
        return (
            f"<Property(id={self.id}, host_id={self.host_id}, "
            f"price_per_night={self.price_per_night}, status={self.status})>"
        )
