"""Resolution of a user's relationship to a booking."""

from enum import Enum
from uuid import UUID

from ..models.booking import Booking
from ..models.property import Property


class BookingParty(str, Enum):
    """The side of a booking a user is on."""
    HOST = "host"
    GUEST = "guest"
    NEITHER = "neither"


def resolve_booking_party(booking: Booking, property: Property, user_id: UUID) -> BookingParty:
    """
    Return which party ``user_id`` is for ``booking``.

    The host is the owner of the booked property; the guest is whoever made
    the reservation. Hosts cannot book their own property, so the two never
    coincide; should they, HOST wins.
    """
    if property.host_id == user_id:
        return BookingParty.HOST
    if booking.guest_id == user_id:
        return BookingParty.GUEST
    return BookingParty.NEITHER
