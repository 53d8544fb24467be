"""Availability checks for property date ranges."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """
    Return True if the half-open ranges [start_a, end_a) and [start_b, end_b) overlap.

    Ranges that merely touch (``end_a == start_b``) do not overlap: a guest
    checking out in the morning frees the property for a check-in that day.
    """
    return start_a < end_b and start_b < end_a


class AvailabilityService:
    """Decides whether a property can be reserved for a date range."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_conflicts(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None
    ) -> list[Booking]:
        """
        Return the non-cancelled bookings of a property that overlap a date range.

        Args:
            property_id: Property to check
            check_in: Candidate range start (inclusive)
            check_out: Candidate range end (exclusive)
            exclude_booking_id: Booking to ignore, e.g. when re-checking an existing one

        Returns:
            Conflicting bookings ordered by check-in date
        """
        conditions = [
            Booking.property_id == property_id,
            Booking.status != BookingStatus.CANCELLED,
        ]
        if exclude_booking_id is not None:
            conditions.append(Booking.id != exclude_booking_id)

        stmt = select(Booking).where(*conditions).order_by(Booking.check_in)
        result = await self.db.execute(stmt)
        return [
            booking for booking in result.scalars()
            if ranges_overlap(check_in, check_out, booking.check_in, booking.check_out)
        ]

    async def is_available(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None
    ) -> bool:
        """Return True if no non-cancelled booking of the property overlaps the range."""
        conflicts = await self.find_conflicts(property_id, check_in, check_out, exclude_booking_id)

        if conflicts:
            logger.debug(
                "Date range unavailable",
                extra={
                    "property_id": str(property_id),
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                    "conflicting_booking_ids": [str(b.id) for b in conflicts],
                }
            )

        return not conflicts
