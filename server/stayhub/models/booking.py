"""Booking model definition."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DDL, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, Uuid, event
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .base import TimestampMixin, enum_values

if TYPE_CHECKING:
    from .property import Property


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PAID = "paid"


class Booking(Base, TimestampMixin):
    """
    A guest's reservation of a property over the half-open range [check_in, check_out).

    Rows are never deleted; cancellation is a status. ``version`` is bumped on
    every update and checked by the ORM so concurrent writers cannot silently
    overwrite each other's status change.
    """

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    property_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    guest_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(BookingStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("check_in < check_out", name="ck_booking_dates_ordered"),
        CheckConstraint("guests > 0", name="ck_booking_guests_positive"),
        CheckConstraint("total_price >= 0", name="ck_booking_total_price_non_negative"),
        Index("ix_bookings_property_dates", "property_id", "check_in", "check_out"),
    )

    __mapper_args__ = {"version_id_col": version}

    property: Mapped["Property"] = relationship("Property", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, property_id={self.property_id}, "
            f"check_in={self.check_in}, check_out={self.check_out}, status={self.status})>"
        )


# Authoritative store-side guard against double booking. PostgreSQL enforces it
# with an exclusion constraint; SQLite (tests, local runs) with a trigger.
event.listen(
    Booking.__table__,
    "after_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql")
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_no_overlap "
        "EXCLUDE USING gist (property_id WITH =, daterange(check_in, check_out, '[)') WITH &&) "
        "WHERE (status <> 'cancelled')"
    ).execute_if(dialect="postgresql")
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS trg_bookings_no_overlap "
        "BEFORE INSERT ON bookings "
        "WHEN NEW.status <> 'cancelled' AND EXISTS ("
        "SELECT 1 FROM bookings WHERE property_id = NEW.property_id "
        "AND status <> 'cancelled' "
        "AND check_in < NEW.check_out AND NEW.check_in < check_out) "
        "BEGIN SELECT RAISE(ABORT, 'ex_bookings_no_overlap'); END"
    ).execute_if(dialect="sqlite")
)
