"""Booking router for reservation and status operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..core.dependencies import RequiredAuth, get_booking_service
from ..core.exceptions import ProblemDetailsException
from ..schemas.auth import Principal
from ..schemas.booking import (
    Booking,
    BookingList,
    CreateBookingRequest,
    GetBookingRequest,
    ListBookingsRequest,
    UpdateBookingStatusRequest,
)
from ..schemas.common import PROBLEM_RESPONSES
from ..services.booking_service import BookingService, calculate_nights

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"], responses=PROBLEM_RESPONSES)

# Define dependencies to avoid B008 linting errors
BOOKING_SERVICE_DEPENDENCY = Depends(get_booking_service)


def _convert_booking_to_schema(booking_model) -> Booking:
    """Convert booking model to schema."""
    return Booking(
        id=booking_model.id,
        property_id=booking_model.property_id,
        guest_id=booking_model.guest_id,
        check_in=booking_model.check_in,
        check_out=booking_model.check_out,
        nights=calculate_nights(booking_model.check_in, booking_model.check_out),
        guests=booking_model.guests,
        total_price=booking_model.total_price,
        status=booking_model.status,
        created_at=booking_model.created_at,
        updated_at=booking_model.updated_at
    )


@router.post("/create", response_model=Booking, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    principal: Principal = RequiredAuth,
    booking_service: BookingService = BOOKING_SERVICE_DEPENDENCY
) -> JSONResponse:
    """
    Reserve a property for a date range.

    The booking starts in ``pending`` and waits for the host to confirm it.
    """
    try:
        booking = await booking_service.create_booking(
            property_id=request.property_id,
            check_in=request.check_in,
            check_out=request.check_out,
            guests=request.guests,
            requester_id=principal.user_id
        )
        response_data = _convert_booking_to_schema(booking)

        return JSONResponse(
            status_code=201,
            content=response_data.model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "property_id": str(request.property_id),
                "user_id": str(principal.user_id),
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/update-status", response_model=Booking)
async def update_booking_status(
    request: UpdateBookingStatusRequest,
    principal: Principal = RequiredAuth,
    booking_service: BookingService = BOOKING_SERVICE_DEPENDENCY
) -> JSONResponse:
    """
    Move a booking to a new status.

    Only the host can confirm a pending booking; either party can cancel or
    complete it. Paid bookings change status only through refunds.
    """
    try:
        booking = await booking_service.update_status(
            booking_id=request.booking_id,
            requester_id=principal.user_id,
            target_status=request.status
        )
        response_data = _convert_booking_to_schema(booking)

        return JSONResponse(
            status_code=200,
            content=response_data.model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking status update",
            extra={
                "booking_id": str(request.booking_id),
                "target_status": request.status.value,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=Booking)
async def get_booking(
    request: GetBookingRequest,
    principal: Principal = RequiredAuth,
    booking_service: BookingService = BOOKING_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Get booking details; visible to its guest and host."""
    booking = await booking_service.get_booking(request.booking_id, principal)
    response_data = _convert_booking_to_schema(booking)

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )


@router.post("/list", response_model=BookingList)
async def list_bookings(
    request: ListBookingsRequest,
    principal: Principal = RequiredAuth,
    booking_service: BookingService = BOOKING_SERVICE_DEPENDENCY
) -> JSONResponse:
    """List the caller's stays (guests) or the reservations on their properties (hosts)."""
    bookings = await booking_service.list_user_bookings(principal, request.status)
    items = [_convert_booking_to_schema(b) for b in bookings]

    logger.debug(
        "Bookings listed",
        extra={"user_id": str(principal.user_id), "count": len(items)}
    )

    return JSONResponse(
        status_code=200,
        content=BookingList(items=items, count=len(items)).model_dump(mode="json")
    )
