"""Unit tests for the booking lifecycle."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stayhub.core.exceptions import (
    AuthorizationError,
    AvailabilityConflictError,
    InvalidTransitionError,
    NotFoundError,
    SelfBookingForbiddenError,
    ValidationError,
)
from stayhub.models.booking import BookingStatus
from stayhub.schemas.auth import Principal, UserRole
from stayhub.services.authorization import BookingParty
from stayhub.services.booking_service import (
    BOOKING_TRANSITIONS,
    TRANSITION_ACTORS,
    BookingService,
    calculate_nights,
    calculate_total_price,
)
from stayhub.services.payment_service import PaymentService

STAY_CHECK_IN = date(2025, 12, 1)
STAY_CHECK_OUT = date(2025, 12, 5)


def test_calculate_nights_uses_calendar_dates():
    assert calculate_nights(date(2025, 12, 1), date(2025, 12, 5)) == 4
    # Across a DST change and a month boundary
    assert calculate_nights(date(2025, 10, 25), date(2025, 11, 2)) == 8


def test_calculate_nights_rejects_empty_range():
    with pytest.raises(ValueError):
        calculate_nights(date(2025, 12, 1), date(2025, 12, 1))


def test_calculate_total_price_is_exact():
    assert calculate_total_price(Decimal("100.00"), 4) == Decimal("400.00")
    assert calculate_total_price(Decimal("33.33"), 3) == Decimal("99.99")


@pytest.mark.asyncio
async def test_create_booking_prices_the_stay(pending_booking, guest, listed_property):
    """Four nights at 100.00 cost 400.00 and start pending."""
    assert pending_booking.status == BookingStatus.PENDING
    assert pending_booking.total_price == Decimal("400.00")
    assert pending_booking.guest_id == guest.user_id
    assert pending_booking.property_id == listed_property.id
    assert pending_booking.version == 1


@pytest.mark.asyncio
async def test_create_booking_overlap_conflicts(test_session, pending_booking, listed_property):
    service = BookingService(test_session)

    with pytest.raises(AvailabilityConflictError) as exc_info:
        await service.create_booking(
            property_id=listed_property.id,
            check_in=date(2025, 12, 3),
            check_out=date(2025, 12, 7),
            guests=1,
            requester_id=uuid4()
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.problem_details["code"] == "AVAILABILITY_CONFLICT"


@pytest.mark.asyncio
async def test_adjacent_bookings_do_not_conflict(test_session, pending_booking, listed_property):
    """Checking in on the day the previous guest checks out is allowed."""
    booking = await BookingService(test_session).create_booking(
        property_id=listed_property.id,
        check_in=STAY_CHECK_OUT,
        check_out=date(2025, 12, 8),
        guests=1,
        requester_id=uuid4()
    )
    assert booking.status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_cancelled_booking_frees_dates(test_session, pending_booking, listed_property, guest):
    service = BookingService(test_session)
    await service.update_status(pending_booking.id, guest.user_id, BookingStatus.CANCELLED)

    rebooked = await service.create_booking(
        property_id=listed_property.id,
        check_in=STAY_CHECK_IN,
        check_out=STAY_CHECK_OUT,
        guests=2,
        requester_id=uuid4()
    )
    assert rebooked.status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_host_cannot_book_own_property(test_session, listed_property, host):
    with pytest.raises(SelfBookingForbiddenError) as exc_info:
        await BookingService(test_session).create_booking(
            property_id=listed_property.id,
            check_in=STAY_CHECK_IN,
            check_out=STAY_CHECK_OUT,
            guests=1,
            requester_id=host.user_id
        )
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_create_booking_unknown_property(test_session, guest):
    with pytest.raises(NotFoundError):
        await BookingService(test_session).create_booking(
            property_id=uuid4(),
            check_in=STAY_CHECK_IN,
            check_out=STAY_CHECK_OUT,
            guests=1,
            requester_id=guest.user_id
        )


@pytest.mark.asyncio
async def test_create_booking_rejects_unordered_dates(test_session, listed_property, guest):
    with pytest.raises(ValidationError):
        await BookingService(test_session).create_booking(
            property_id=listed_property.id,
            check_in=STAY_CHECK_OUT,
            check_out=STAY_CHECK_IN,
            guests=1,
            requester_id=guest.user_id
        )


@pytest.mark.asyncio
async def test_host_confirms_then_guest_completes(test_session, pending_booking, host, guest):
    service = BookingService(test_session)

    confirmed = await service.update_status(pending_booking.id, host.user_id, BookingStatus.CONFIRMED)
    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.version == 2

    completed = await service.update_status(pending_booking.id, guest.user_id, BookingStatus.COMPLETED)
    assert completed.status == BookingStatus.COMPLETED


@pytest.mark.asyncio
async def test_guest_cannot_confirm(test_session, pending_booking, guest):
    booking_id = pending_booking.id

    with pytest.raises(AuthorizationError):
        await BookingService(test_session).update_status(booking_id, guest.user_id, BookingStatus.CONFIRMED)

    refreshed = await BookingService(test_session).get_booking_by_id(booking_id)
    assert refreshed.status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_stranger_cannot_update(test_session, pending_booking, stranger):
    with pytest.raises(AuthorizationError):
        await BookingService(test_session).update_status(
            pending_booking.id, stranger.user_id, BookingStatus.CANCELLED
        )


@pytest.mark.asyncio
async def test_stranger_is_unauthorized_before_transition_check(test_session, pending_booking, stranger):
    """An unrelated user learns nothing about which transitions are legal."""
    with pytest.raises(AuthorizationError):
        await BookingService(test_session).update_status(
            pending_booking.id, stranger.user_id, BookingStatus.COMPLETED
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [BookingStatus.COMPLETED, BookingStatus.PAID, BookingStatus.PENDING])
async def test_invalid_transitions_from_pending(test_session, pending_booking, host, target):
    with pytest.raises(InvalidTransitionError) as exc_info:
        await BookingService(test_session).update_status(pending_booking.id, host.user_id, target)

    assert exc_info.value.problem_details["current_status"] == "pending"
    assert exc_info.value.problem_details["target_status"] == target.value


@pytest.mark.asyncio
async def test_cancelled_is_terminal(test_session, pending_booking, host, guest):
    service = BookingService(test_session)
    await service.update_status(pending_booking.id, guest.user_id, BookingStatus.CANCELLED)

    with pytest.raises(InvalidTransitionError):
        await service.update_status(pending_booking.id, host.user_id, BookingStatus.CONFIRMED)


@pytest.mark.asyncio
async def test_update_unknown_booking(test_session, host):
    with pytest.raises(NotFoundError):
        await BookingService(test_session).update_status(uuid4(), host.user_id, BookingStatus.CONFIRMED)


@pytest.mark.asyncio
async def test_get_booking_visibility(test_session, pending_booking, host, guest, stranger):
    service = BookingService(test_session)

    assert (await service.get_booking(pending_booking.id, guest)).id == pending_booking.id
    assert (await service.get_booking(pending_booking.id, host)).id == pending_booking.id

    admin = Principal(user_id=uuid4(), role=UserRole.ADMIN)
    assert (await service.get_booking(pending_booking.id, admin)).id == pending_booking.id

    with pytest.raises(AuthorizationError):
        await service.get_booking(pending_booking.id, stranger)


@pytest.mark.asyncio
async def test_list_user_bookings_by_role(test_session, pending_booking, host, guest, stranger):
    service = BookingService(test_session)

    guest_view = await service.list_user_bookings(guest)
    host_view = await service.list_user_bookings(host)
    stranger_view = await service.list_user_bookings(stranger)

    assert [b.id for b in guest_view] == [pending_booking.id]
    assert [b.id for b in host_view] == [pending_booking.id]
    assert stranger_view == []

    assert await service.list_user_bookings(guest, BookingStatus.CONFIRMED) == []


@pytest.mark.asyncio
async def test_store_constraint_violation_is_not_reported_as_conflict(test_session, listed_property, guest):
    """A CHECK failure at commit is a validation problem, not a date clash."""
    property_id = listed_property.id
    service = BookingService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_booking(
            property_id=property_id,
            check_in=STAY_CHECK_IN,
            check_out=STAY_CHECK_OUT,
            guests=0,
            requester_id=guest.user_id
        )

    assert not isinstance(exc_info.value, AvailabilityConflictError)
    assert exc_info.value.status_code == 422

    # The session is usable and the dates are still free
    booking = await service.create_booking(
        property_id=property_id,
        check_in=STAY_CHECK_IN,
        check_out=STAY_CHECK_OUT,
        guests=1,
        requester_id=guest.user_id
    )
    assert booking.status == BookingStatus.PENDING


async def _drive_to(test_session, booking_id, status, host, guest):
    """Move a pending booking to ``status`` through legal edges only."""
    service = BookingService(test_session)
    if status is BookingStatus.PENDING:
        return
    if status is BookingStatus.CANCELLED:
        await service.update_status(booking_id, guest.user_id, BookingStatus.CANCELLED)
        return

    await service.update_status(booking_id, host.user_id, BookingStatus.CONFIRMED)
    if status is BookingStatus.COMPLETED:
        await service.update_status(booking_id, guest.user_id, BookingStatus.COMPLETED)
    elif status is BookingStatus.PAID:
        await PaymentService(test_session).process_payment(booking_id, guest.user_id, "card")


ILLEGAL_EDGES = [
    (current, target)
    for current in BookingStatus
    for target in BookingStatus
    if target not in BOOKING_TRANSITIONS[current]
]

LEGAL_EDGES = [
    (current, target, party)
    for (current, target), parties in TRANSITION_ACTORS.items()
    for party in parties
]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "current,target",
    ILLEGAL_EDGES,
    ids=[f"{c.value}-to-{t.value}" for c, t in ILLEGAL_EDGES]
)
async def test_update_status_rejects_every_edge_outside_the_table(
    test_session, pending_booking, host, guest, current, target
):
    booking_id = pending_booking.id
    await _drive_to(test_session, booking_id, current, host, guest)

    service = BookingService(test_session)
    for requester in (host, guest):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.update_status(booking_id, requester.user_id, target)
        assert exc_info.value.problem_details["current_status"] == current.value

    refreshed = await service.get_booking_by_id(booking_id)
    assert refreshed.status == current


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "current,target,party",
    LEGAL_EDGES,
    ids=[f"{c.value}-to-{t.value}-by-{p.value}" for c, t, p in LEGAL_EDGES]
)
async def test_update_status_allows_listed_actors(
    test_session, pending_booking, host, guest, current, target, party
):
    booking_id = pending_booking.id
    await _drive_to(test_session, booking_id, current, host, guest)

    requester = host if party is BookingParty.HOST else guest
    booking = await BookingService(test_session).update_status(booking_id, requester.user_id, target)

    assert booking.status == target


@pytest.mark.asyncio
async def test_completed_booking_cannot_be_confirmed_again(test_session, pending_booking, host, guest):
    booking_id = pending_booking.id
    await _drive_to(test_session, booking_id, BookingStatus.COMPLETED, host, guest)

    with pytest.raises(InvalidTransitionError):
        await BookingService(test_session).update_status(booking_id, host.user_id, BookingStatus.CONFIRMED)
