"""Payment service: settlement of confirmed bookings, refunds and host earnings."""

import logging
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import Select, func, literal_column, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import settings
from ..core.database import is_postgresql
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    DuplicatePaymentError,
    InvalidStateError,
    NotFoundError,
)
from ..core.observability import metrics_collector
from ..models.base import utcnow
from ..models.booking import Booking, BookingStatus
from ..models.payment import Payment, PaymentStatus
from ..models.property import Property
from ..schemas.auth import Principal, UserRole
from ..schemas.payment import EarningsSummary, MonthlyEarnings

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
EARNINGS_EPOCH = date(2020, 1, 1)


def calculate_fee_split(amount: Decimal, fee_percentage: Decimal) -> tuple[Decimal, Decimal]:
    """
    Split a payment into the platform fee and the host payout.

    The fee is rounded half-up to cents and the host receives the remainder,
    so ``platform_fee + host_amount == amount`` holds exactly.

    Returns:
        (platform_fee, host_amount)
    """
    amount = Decimal(amount)
    platform_fee = (amount * Decimal(fee_percentage) / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    host_amount = amount - platform_fee
    return platform_fee, host_amount


class PaymentService:
    """Service for payment-related operations."""

    def __init__(self, db: AsyncSession, fee_percentage: Decimal | None = None):
        self.db = db
        self.fee_percentage = settings.platform_fee_percentage if fee_percentage is None else fee_percentage

    async def process_payment(
        self,
        booking_id: UUID,
        payer_id: UUID,
        payment_method: str,
        transaction_id: Optional[str] = None
    ) -> Payment:
        """
        Settle a confirmed booking.

        The completed payment and the booking's move to PAID are committed
        together; on any failure neither is persisted.

        Args:
            booking_id: Booking being paid for
            payer_id: User paying; must be the booking's guest
            payment_method: Payment method label
            transaction_id: Optional external transaction reference

        Returns:
            Completed payment

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the payer is not the booking's guest
            DuplicatePaymentError: If the booking already has an active payment
            InvalidStateError: If the booking is not confirmed
        """
        booking = await self._get_booking_or_raise(booking_id)

        try:
            if booking.guest_id != payer_id:
                logger.warning(
                    "Payment rejected - payer is not the guest",
                    extra={"booking_id": str(booking_id), "payer_id": str(payer_id)}
                )
                raise AuthorizationError("Only the guest can pay for this booking")

            active_payment = await self.get_active_payment_for_booking(booking_id)
            if active_payment:
                logger.warning(
                    "Payment rejected - booking already settled",
                    extra={"booking_id": str(booking_id), "payment_id": str(active_payment.id)}
                )
                raise DuplicatePaymentError(str(booking_id), str(active_payment.id))

            if booking.status != BookingStatus.CONFIRMED:
                logger.warning(
                    "Payment rejected - booking not confirmed",
                    extra={"booking_id": str(booking_id), "status": booking.status.value}
                )
                raise InvalidStateError(
                    f"Booking must be confirmed before payment (current status: '{booking.status.value}')",
                    current_status=booking.status.value
                )

            amount = Decimal(booking.total_price)
            platform_fee, host_amount = calculate_fee_split(amount, self.fee_percentage)

            payment = Payment(
                booking=booking,
                payer_id=payer_id,
                amount=amount,
                platform_fee=platform_fee,
                host_amount=host_amount,
                payment_method=payment_method,
                status=PaymentStatus.COMPLETED,
                transaction_id=transaction_id
            )
            self.db.add(payment)
            booking.status = BookingStatus.PAID

            try:
                await self.db.commit()
            except (IntegrityError, StaleDataError) as e:
                # A concurrent payment for the same booking committed first
                logger.warning(
                    "Payment rejected - concurrent settlement detected at commit",
                    extra={"booking_id": str(booking_id), "error": str(e)}
                )
                raise DuplicatePaymentError(str(booking_id)) from e

        except DomainError:
            await self.db.rollback()
            raise

        metrics_collector.record_payment(payment_method, platform_fee)
        logger.info(
            "Payment processed successfully",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking_id),
                "amount": str(amount),
                "platform_fee": str(platform_fee),
                "host_amount": str(host_amount)
            }
        )

        return payment

    async def refund_payment(
        self,
        payment_id: UUID,
        requester_id: UUID,
        reason: Optional[str] = None
    ) -> Payment:
        """
        Refund a completed payment and cancel its booking.

        Raises:
            NotFoundError: If the payment does not exist
            InvalidStateError: If the payment is not completed
            AuthorizationError: If the requester is not the property's host
        """
        payment = await self.get_payment_by_id_or_raise(payment_id)
        booking = payment.booking

        try:
            if payment.status != PaymentStatus.COMPLETED:
                logger.warning(
                    "Refund rejected - payment not completed",
                    extra={"payment_id": str(payment_id), "status": payment.status.value}
                )
                raise InvalidStateError(
                    f"Only completed payments can be refunded (current status: '{payment.status.value}')",
                    current_status=payment.status.value
                )

            if booking.property.host_id != requester_id:
                logger.warning(
                    "Refund rejected - requester is not the host",
                    extra={"payment_id": str(payment_id), "user_id": str(requester_id)}
                )
                raise AuthorizationError("Only the host can refund this payment")

            payment.status = PaymentStatus.REFUNDED
            payment.refund_reason = reason
            payment.refunded_at = utcnow()
            booking.status = BookingStatus.CANCELLED

            try:
                await self.db.commit()
            except StaleDataError as e:
                raise InvalidStateError(
                    f"Booking {booking.id} was modified concurrently; reload and retry"
                ) from e

        except DomainError:
            await self.db.rollback()
            raise

        metrics_collector.record_refund()
        logger.info(
            "Payment refunded",
            extra={
                "payment_id": str(payment_id),
                "booking_id": str(booking.id),
                "amount": str(payment.amount)
            }
        )

        return payment

    async def get_payment(self, payment_id: UUID, principal: Principal) -> Payment:
        """
        Get a payment visible to the requester (payer or host).

        Raises:
            NotFoundError: If payment not found
            AuthorizationError: If the requester is neither payer nor host
        """
        payment = await self.get_payment_by_id_or_raise(payment_id)

        is_party = principal.user_id in (payment.payer_id, payment.booking.property.host_id)
        if not is_party and principal.role is not UserRole.ADMIN:
            raise AuthorizationError("Not authorized to view this payment")

        return payment

    async def list_user_payments(self, principal: Principal) -> list[Payment]:
        """List payments made by a guest, or received by a host, newest first."""
        stmt = select(Payment)
        if principal.role is UserRole.GUEST:
            stmt = stmt.where(Payment.payer_id == principal.user_id)
        else:
            stmt = (
                stmt.join(Booking, Payment.booking_id == Booking.id)
                .join(Property, Booking.property_id == Property.id)
                .where(Property.host_id == principal.user_id)
            )

        stmt = stmt.order_by(Payment.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().unique())

    async def get_host_earnings(
        self,
        host_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> list[MonthlyEarnings]:
        """
        Completed payments received by a host, grouped by calendar month.

        Args:
            host_id: Host whose earnings to compute
            start_date: First day included (default 2020-01-01)
            end_date: Last day included (default today)

        Returns:
            One entry per month with payments, newest month first
        """
        start = datetime.combine(start_date or EARNINGS_EPOCH, time.min)
        end = datetime.combine(end_date or utcnow().date(), time.max)

        month = self._month_of(Payment.created_at).label("month")
        stmt = (
            self._completed_host_payments(
                host_id,
                month,
                func.coalesce(func.sum(Payment.host_amount), 0).label("total_earnings"),
                func.coalesce(func.sum(Payment.platform_fee), 0).label("total_fees"),
                func.count(Payment.id).label("total_payments"),
            )
            .where(Payment.created_at >= start, Payment.created_at <= end)
            .group_by(month)
            .order_by(month.desc())
        )
        result = await self.db.execute(stmt)

        return [
            MonthlyEarnings(
                month=row.month,
                total_earnings=row.total_earnings,
                total_fees=row.total_fees,
                total_payments=row.total_payments
            )
            for row in result
        ]

    async def get_earnings_summary(self, host_id: UUID) -> EarningsSummary:
        """All-time totals and the current month's earnings for a host."""
        totals = (await self.db.execute(
            self._completed_host_payments(
                host_id,
                func.coalesce(func.sum(Payment.host_amount), 0),
                func.count(Payment.id),
            )
        )).one()
        total, count = Decimal(totals[0]), totals[1]
        average = (total / count).quantize(CENT, rounding=ROUND_HALF_UP) if count else Decimal("0.00")

        month_start = datetime.combine(utcnow().date().replace(day=1), time.min)
        this_month_total = (await self.db.execute(
            self._completed_host_payments(
                host_id,
                func.coalesce(func.sum(Payment.host_amount), 0),
            ).where(Payment.created_at >= month_start)
        )).scalar_one()

        return EarningsSummary(
            total_earnings=total,
            total_payments=count,
            average_per_booking=average,
            this_month_earnings=Decimal(this_month_total)
        )

    async def get_active_payment_for_booking(self, booking_id: UUID) -> Payment | None:
        """Return the booking's non-refunded payment, if any."""
        stmt = select(Payment).where(
            Payment.booking_id == booking_id,
            Payment.status != PaymentStatus.REFUNDED
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_payment_by_id(self, payment_id: UUID) -> Payment | None:
        """Get payment by ID, with its booking and property loaded."""
        stmt = select(Payment).where(Payment.id == payment_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_payment_by_id_or_raise(self, payment_id: UUID) -> Payment:
        """Get payment by ID or raise NotFoundError."""
        payment = await self.get_payment_by_id(payment_id)
        if not payment:
            logger.warning(
                "Payment not found",
                extra={"payment_id": str(payment_id)}
            )
            raise NotFoundError(
                resource_type="payment",
                resource_id=str(payment_id)
            )
        return payment

    async def _get_booking_or_raise(self, booking_id: UUID) -> Booking:
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        booking = result.scalar_one_or_none()
        if not booking:
            logger.warning(
                "Payment rejected - booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    def _completed_host_payments(self, host_id: UUID, *columns) -> Select:
        """Select ``columns`` over the completed payments on a host's properties."""
        return (
            select(*columns)
            .select_from(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .join(Property, Booking.property_id == Property.id)
            .where(
                Property.host_id == host_id,
                Payment.status == PaymentStatus.COMPLETED
            )
        )

    def _month_of(self, column):
        # Format string inlined so SELECT and GROUP BY render the same expression
        if is_postgresql(self.db):
            return func.to_char(column, literal_column("'YYYY-MM'"))
        return func.strftime(literal_column("'%Y-%m'"), column)
