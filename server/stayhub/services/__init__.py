"""Service layer package."""

from .authorization import BookingParty, resolve_booking_party
from .availability_service import AvailabilityService, ranges_overlap
from .booking_service import BookingService
from .chat_service import ChatService
from .connection_registry import ConnectionRegistry
from .payment_service import PaymentService, calculate_fee_split
from .property_service import PropertyService

__all__ = [
    "AvailabilityService",
    "BookingParty",
    "BookingService",
    "ChatService",
    "ConnectionRegistry",
    "PaymentService",
    "PropertyService",
    "calculate_fee_split",
    "ranges_overlap",
    "resolve_booking_party",
]
