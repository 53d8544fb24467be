"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .message import Message
from .payment import Payment, PaymentStatus
from .property import Property, PropertyStatus

__all__ = [
    # Catalog
    "Property",
    "PropertyStatus",

    # Reservations and settlement
    "Booking",
    "BookingStatus",
    "Payment",
    "PaymentStatus",

    # Chat
    "Message",
]
