"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from ..models.booking import BookingStatus


class CreateBookingRequest(BaseModel):
    """Request schema for reserving a property."""

    property_id: UUID = Field(..., description="Property to reserve")
    check_in: date = Field(..., description="First night (inclusive)")
    check_out: date = Field(..., description="Departure day (exclusive)")
    guests: int = Field(..., ge=1, description="Number of guests")

    @model_validator(mode="after")
    def validate_dates(self) -> "CreateBookingRequest":
        """Check-out must follow check-in, and check-in cannot be in the past."""
        if self.check_in >= self.check_out:
            raise ValueError("check_out must be after check_in")
        if self.check_in < date.today():
            raise ValueError("check_in cannot be in the past")
        return self


class UpdateBookingStatusRequest(BaseModel):
    """Request schema for moving a booking to a new status."""

    booking_id: UUID = Field(..., description="Booking to update")
    status: BookingStatus = Field(..., description="Target status")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: UUID = Field(..., description="Booking to retrieve")


class ListBookingsRequest(BaseModel):
    """Request schema for listing the caller's bookings."""

    status: Optional[BookingStatus] = Field(None, description="Only return bookings in this status")


class Booking(BaseModel):
    """Booking response schema."""

    id: UUID = Field(..., description="Unique booking ID")
    property_id: UUID = Field(..., description="Reserved property")
    guest_id: UUID = Field(..., description="Guest who made the reservation")
    check_in: date
    check_out: date
    nights: int = Field(..., ge=1)
    guests: int = Field(..., ge=1)
    total_price: Decimal = Field(..., description="Price for the whole stay")
    status: BookingStatus
    created_at: datetime
    updated_at: datetime


class BookingList(BaseModel):
    """List of bookings."""

    items: list[Booking]
    count: int
