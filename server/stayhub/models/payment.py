"""Payment model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .base import TimestampMixin, enum_values

if TYPE_CHECKING:
    from .booking import Booking


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base, TimestampMixin):
    """Settlement of a booking, split between the platform fee and the host payout."""

    __tablename__ = "payments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    payer_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    # amount == platform_fee + host_amount exactly; see calculate_fee_split
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    host_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True
    )
    transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payment_amount_non_negative"),
        CheckConstraint("platform_fee >= 0", name="ck_payment_platform_fee_non_negative"),
        CheckConstraint("length(payment_method) > 0", name="ck_payment_method_not_empty"),
        # At most one active (non-refunded) payment per booking
        Index(
            "uq_payments_active_booking",
            "booking_id",
            unique=True,
            postgresql_where=text("status <> 'refunded'"),
            sqlite_where=text("status <> 'refunded'"),
        ),
    )

    booking: Mapped["Booking"] = relationship("Booking", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, booking_id={self.booking_id}, amount={self.amount}, "
            f"platform_fee={self.platform_fee}, host_amount={self.host_amount}, status={self.status})>"
        )
