"""Booking service: reservation creation and the booking status state machine."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.database import acquire_xact_lock
from ..core.exceptions import (
    AuthorizationError,
    AvailabilityConflictError,
    DomainError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    SelfBookingForbiddenError,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.property import Property, PropertyStatus
from ..schemas.auth import Principal, UserRole
from .authorization import BookingParty, resolve_booking_party
from .availability_service import AvailabilityService
from .property_service import PropertyService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Name shared by the PostgreSQL exclusion constraint and the SQLite trigger
OVERLAP_CONSTRAINT = "ex_bookings_no_overlap"

# Edges reachable through update_status. PAID is entered and left only by the
# payment service; COMPLETED and CANCELLED are terminal.
BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.PAID: frozenset(),
}

# Who may take each edge.
TRANSITION_ACTORS: dict[tuple[BookingStatus, BookingStatus], frozenset[BookingParty]] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): frozenset({BookingParty.HOST}),
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset({BookingParty.HOST, BookingParty.GUEST}),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): frozenset({BookingParty.HOST, BookingParty.GUEST}),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): frozenset({BookingParty.HOST, BookingParty.GUEST}),
}


def calculate_nights(check_in: date, check_out: date) -> int:
    """Number of nights in [check_in, check_out), by calendar date."""
    nights = (check_out - check_in).days
    if nights <= 0:
        raise ValueError("check_out must be after check_in")
    return nights


def calculate_total_price(price_per_night: Decimal, nights: int) -> Decimal:
    """Exact price of a stay, in currency units with two fraction digits."""
    return (Decimal(price_per_night) * nights).quantize(CENT)


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability_service = AvailabilityService(db)
        self.property_service = PropertyService(db)

    async def create_booking(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        guests: int,
        requester_id: UUID
    ) -> Booking:
        """
        Reserve a property for a date range on behalf of a guest.

        The availability check and insert run under a per-property lock; the
        store's overlap constraint is the final guard if two requests still race.

        Args:
            property_id: Property to reserve
            check_in: First night (inclusive)
            check_out: Departure day (exclusive)
            guests: Number of guests
            requester_id: Guest making the reservation

        Returns:
            Created booking in PENDING status

        Raises:
            AvailabilityConflictError: If the dates overlap a non-cancelled booking
            NotFoundError: If the property does not exist
            SelfBookingForbiddenError: If the requester hosts the property
            InvalidStateError: If the property is not active
            ValidationError: If the dates are unordered or the row violates
                another table constraint (e.g. a non-positive guest count)
        """
        if check_in >= check_out:
            raise ValidationError(detail="check_out must be after check_in")

        try:
            await acquire_xact_lock(self.db, f"property:{property_id}")

            available = await self.availability_service.is_available(property_id, check_in, check_out)
            if not available:
                logger.warning(
                    "Booking creation failed - dates unavailable",
                    extra={
                        "property_id": str(property_id),
                        "check_in": check_in.isoformat(),
                        "check_out": check_out.isoformat(),
                        "guest_id": str(requester_id)
                    }
                )
                raise AvailabilityConflictError(str(property_id), check_in.isoformat(), check_out.isoformat())

            property = await self.property_service.get_property_by_id_or_raise(property_id)

            if property.host_id == requester_id:
                logger.warning(
                    "Booking creation failed - host booking own property",
                    extra={"property_id": str(property_id), "host_id": str(requester_id)}
                )
                raise SelfBookingForbiddenError(str(property_id))

            if property.status != PropertyStatus.ACTIVE:
                logger.warning(
                    "Booking creation failed - property not accepting bookings",
                    extra={"property_id": str(property_id), "status": property.status.value}
                )
                raise InvalidStateError(
                    f"Property is not accepting bookings (current status: '{property.status.value}')",
                    current_status=property.status.value
                )

            nights = calculate_nights(check_in, check_out)
            total_price = calculate_total_price(property.price_per_night, nights)

            booking = Booking(
                property=property,
                guest_id=requester_id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_price=total_price,
                status=BookingStatus.PENDING
            )
            self.db.add(booking)

            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if OVERLAP_CONSTRAINT in str(e.orig):
                    # A concurrent request won the range
                    logger.warning(
                        "Booking creation failed - store rejected overlapping range",
                        extra={"property_id": str(property_id), "error": str(e.orig)}
                    )
                    raise AvailabilityConflictError(
                        str(property_id), check_in.isoformat(), check_out.isoformat()
                    ) from e

                logger.warning(
                    "Booking creation failed due to constraint violation",
                    extra={"property_id": str(property_id), "guests": guests, "error": str(e.orig)}
                )
                raise ValidationError(
                    detail="Booking creation failed due to constraint violation"
                ) from e

        except DomainError as e:
            await self.db.rollback()
            metrics_collector.record_booking_rejected(e.kind.value)
            raise

        metrics_collector.record_booking_created()
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "property_id": str(property_id),
                "guest_id": str(requester_id),
                "nights": nights,
                "total_price": str(total_price)
            }
        )

        return booking

    async def update_status(
        self,
        booking_id: UUID,
        requester_id: UUID,
        target_status: BookingStatus
    ) -> Booking:
        """
        Move a booking along one edge of its state machine.

        Args:
            booking_id: Booking to update
            requester_id: User requesting the change
            target_status: Desired status

        Returns:
            Updated booking

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the requester is neither host nor guest, or
                may not take this particular edge
            InvalidTransitionError: If target_status is not reachable from the current status
            InvalidStateError: If the booking changed concurrently
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        current_status = booking.status

        try:
            party = resolve_booking_party(booking, booking.property, requester_id)
            if party is BookingParty.NEITHER:
                logger.warning(
                    "Booking status update rejected - requester unrelated to booking",
                    extra={"booking_id": str(booking_id), "user_id": str(requester_id)}
                )
                raise AuthorizationError("Not authorized to modify this booking")

            if target_status not in BOOKING_TRANSITIONS[current_status]:
                logger.warning(
                    "Booking status update rejected - invalid transition",
                    extra={
                        "booking_id": str(booking_id),
                        "current_status": current_status.value,
                        "target_status": target_status.value
                    }
                )
                raise InvalidTransitionError(current_status.value, target_status.value)

            allowed_parties = TRANSITION_ACTORS[(current_status, target_status)]
            if party not in allowed_parties:
                logger.warning(
                    "Booking status update rejected - party may not take this transition",
                    extra={
                        "booking_id": str(booking_id),
                        "party": party.value,
                        "target_status": target_status.value
                    }
                )
                allowed = " or ".join(sorted(p.value for p in allowed_parties))
                raise AuthorizationError(f"Only the {allowed} can move a booking to '{target_status.value}'")

            booking.status = target_status

            try:
                await self.db.commit()
            except StaleDataError as e:
                raise InvalidStateError(
                    f"Booking {booking_id} was modified concurrently; reload and retry",
                    current_status=current_status.value
                ) from e

        except DomainError:
            await self.db.rollback()
            raise

        metrics_collector.record_transition(current_status.value, target_status.value)
        logger.info(
            "Booking status updated",
            extra={
                "booking_id": str(booking_id),
                "from_status": current_status.value,
                "to_status": target_status.value,
                "party": party.value
            }
        )

        return booking

    async def get_booking(self, booking_id: UUID, principal: Principal) -> Booking:
        """
        Get a booking visible to the requester.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the requester is neither host, guest, nor admin
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)

        party = resolve_booking_party(booking, booking.property, principal.user_id)
        if party is BookingParty.NEITHER and principal.role is not UserRole.ADMIN:
            raise AuthorizationError("Not authorized to view this booking")

        return booking

    async def list_user_bookings(
        self,
        principal: Principal,
        status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        """
        List bookings for the requester: their own stays as a guest, or the
        reservations on their properties as a host.
        """
        stmt = select(Booking)
        if principal.role is UserRole.GUEST:
            stmt = stmt.where(Booking.guest_id == principal.user_id)
        else:
            stmt = stmt.join(Booking.property).where(Property.host_id == principal.user_id)

        if status is not None:
            stmt = stmt.where(Booking.status == status)

        stmt = stmt.order_by(Booking.check_in)
        result = await self.db.execute(stmt)
        return list(result.scalars().unique())

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID, with its property loaded."""
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking
