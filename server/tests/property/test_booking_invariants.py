"""Property-based tests for booking and settlement invariants."""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from stayhub.models.booking import BookingStatus
from stayhub.services.authorization import BookingParty
from stayhub.services.availability_service import ranges_overlap
from stayhub.services.booking_service import (
    BOOKING_TRANSITIONS,
    TRANSITION_ACTORS,
    calculate_nights,
    calculate_total_price,
)
from stayhub.services.payment_service import calculate_fee_split

# Strategies for generating test data
days = st.dates(min_value=date(2024, 1, 1), max_value=date(2030, 12, 31))
lengths = st.integers(min_value=1, max_value=60)
amounts = st.decimals(min_value=Decimal("0.00"), max_value=Decimal("99999999.99"), places=2)
percentages = st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2)
prices = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("10000.00"), places=2)


@st.composite
def date_ranges(draw):
    start = draw(days)
    return start, start + timedelta(days=draw(lengths))


@given(a=date_ranges(), b=date_ranges())
def test_overlap_is_symmetric(a, b):
    assert ranges_overlap(*a, *b) == ranges_overlap(*b, *a)


@given(a=date_ranges(), length=lengths)
def test_adjacent_ranges_never_overlap(a, length):
    start, end = a
    following = (end, end + timedelta(days=length))
    preceding = (start - timedelta(days=length), start)

    assert not ranges_overlap(start, end, *following)
    assert not ranges_overlap(start, end, *preceding)


@given(a=date_ranges(), b=date_ranges())
def test_overlap_matches_shared_nights(a, b):
    """Two stays overlap exactly when some night belongs to both."""
    nights_a = {a[0] + timedelta(days=i) for i in range(calculate_nights(*a))}
    nights_b = {b[0] + timedelta(days=i) for i in range(calculate_nights(*b))}
    assert ranges_overlap(*a, *b) == bool(nights_a & nights_b)


@given(stay=date_ranges())
def test_range_overlaps_itself(stay):
    assert ranges_overlap(*stay, *stay)


@given(amount=amounts, percentage=percentages)
def test_fee_split_is_exact(amount, percentage):
    platform_fee, host_amount = calculate_fee_split(amount, percentage)

    assert platform_fee + host_amount == amount
    assert platform_fee >= 0
    assert host_amount >= 0
    assert platform_fee.as_tuple().exponent == -2


@given(price=prices, stay=date_ranges())
def test_total_price_is_price_times_nights(price, stay):
    nights = calculate_nights(*stay)
    total = calculate_total_price(price, nights)

    assert total == price * nights
    assert total.as_tuple().exponent == -2


@given(
    current=st.sampled_from(list(BookingStatus)),
    target=st.sampled_from(list(BookingStatus)),
)
def test_every_legal_edge_has_actors(current, target):
    legal = target in BOOKING_TRANSITIONS[current]
    assert legal == ((current, target) in TRANSITION_ACTORS)
    if legal:
        assert TRANSITION_ACTORS[(current, target)]
        assert BookingParty.NEITHER not in TRANSITION_ACTORS[(current, target)]


def test_terminal_states_have_no_edges():
    for status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.PAID):
        assert BOOKING_TRANSITIONS[status] == frozenset()
