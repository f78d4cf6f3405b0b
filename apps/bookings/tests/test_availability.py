"""Domain tests for the availability resolver against an in-memory store."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from apps.bookings.domain.availability import AvailabilityResolver, ranges_overlap
from apps.bookings.domain.entities import AUTO_REJECT_REASON, HOLDING_STATUSES, BookingStatus
from apps.bookings.domain.events import BookingAutoRejected, BookingConfirmed
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    DateConflict,
    InvalidRange,
    InvalidTransition,
    PastDate,
)

from .fakes import InMemoryBookingStore

TODAY = date(2025, 2, 1)
OWNER = 200


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture
def resolver(store: InMemoryBookingStore) -> AvailabilityResolver:
    return AvailabilityResolver(store, today=lambda: TODAY)


def holding_pairs_overlap(store: InMemoryBookingStore) -> bool:
    holding = [b for b in store.rows.values() if b.status in HOLDING_STATUSES]
    return any(
        a.id != b.id and a.property_id == b.property_id and a.dates.overlaps_with(b.dates)
        for a in holding
        for b in holding
    )


def test_ranges_overlap_is_half_open() -> None:
    assert ranges_overlap(date(2025, 3, 1), date(2025, 3, 10), date(2025, 3, 9), date(2025, 3, 12))
    assert not ranges_overlap(date(2025, 3, 1), date(2025, 3, 10), date(2025, 3, 10), date(2025, 3, 12))
    assert not ranges_overlap(date(2025, 3, 10), date(2025, 3, 12), date(2025, 3, 1), date(2025, 3, 10))


def test_confirmed_range_blocks_overlap_but_not_abutting(store, resolver) -> None:
    store.seed(date(2025, 3, 1), date(2025, 3, 10), BookingStatus.CONFIRMED)

    assert resolver.is_range_available(1, date(2025, 3, 5), date(2025, 3, 15)) is False
    assert resolver.is_range_available(1, date(2025, 3, 10), date(2025, 3, 15)) is True


def test_other_property_does_not_block(store, resolver) -> None:
    store.seed(date(2025, 3, 1), date(2025, 3, 10), BookingStatus.CONFIRMED, property_id=2)

    assert resolver.is_range_available(1, date(2025, 3, 1), date(2025, 3, 10)) is True


def test_terminal_bookings_do_not_block(store, resolver) -> None:
    for status in (BookingStatus.CANCELLED, BookingStatus.REJECTED, BookingStatus.COMPLETED):
        store.seed(date(2025, 3, 1), date(2025, 3, 10), status)

    assert resolver.is_range_available(1, date(2025, 3, 1), date(2025, 3, 10)) is True


def test_pending_blocks_by_default_but_not_for_holding_statuses(store, resolver) -> None:
    store.seed(date(2025, 3, 1), date(2025, 3, 10), BookingStatus.PENDING)

    assert resolver.is_range_available(1, date(2025, 3, 2), date(2025, 3, 4)) is False
    assert resolver.is_range_available(
        1, date(2025, 3, 2), date(2025, 3, 4), statuses=HOLDING_STATUSES
    ) is True


def test_exclude_booking_id_ignores_itself(store, resolver) -> None:
    booking = store.seed(date(2025, 3, 1), date(2025, 3, 10), BookingStatus.CONFIRMED)

    assert resolver.is_range_available(
        1, date(2025, 3, 1), date(2025, 3, 10), exclude_booking_id=booking.id
    ) is True


def test_is_range_available_is_idempotent(store, resolver) -> None:
    store.seed(date(2025, 3, 1), date(2025, 3, 10), BookingStatus.CONFIRMED)
    before = {key: row.status for key, row in store.rows.items()}

    first = resolver.is_range_available(1, date(2025, 3, 5), date(2025, 3, 8))
    second = resolver.is_range_available(1, date(2025, 3, 5), date(2025, 3, 8))

    assert first == second
    assert {key: row.status for key, row in store.rows.items()} == before


@pytest.mark.parametrize(
    "check_in, check_out",
    [
        (date(2025, 3, 10), date(2025, 3, 10)),
        (date(2025, 3, 10), date(2025, 3, 1)),
    ],
)
def test_invalid_ranges_are_rejected(resolver, check_in, check_out) -> None:
    with pytest.raises(InvalidRange):
        resolver.is_range_available(1, check_in, check_out)


def test_past_check_in_is_rejected(resolver) -> None:
    with pytest.raises(PastDate):
        resolver.is_range_available(1, TODAY - timedelta(days=1), TODAY + timedelta(days=3))

    assert resolver.is_range_available(
        1, TODAY - timedelta(days=1), TODAY + timedelta(days=3), allow_past=True
    ) is True


def test_check_in_today_is_allowed(resolver) -> None:
    assert resolver.is_range_available(1, TODAY, TODAY + timedelta(days=1)) is True


def test_confirm_rejects_overlapping_pending_requests(store, resolver) -> None:
    a = store.seed(date(2025, 3, 1), date(2025, 3, 10), renter_id=101)
    b = store.seed(date(2025, 3, 5), date(2025, 3, 12), renter_id=102)
    c = store.seed(date(2025, 2, 25), date(2025, 3, 2), renter_id=103)
    untouched = store.seed(date(2025, 3, 10), date(2025, 3, 20), renter_id=104)

    result = resolver.confirm_booking(a.id, OWNER)

    assert result.booking.status == BookingStatus.CONFIRMED
    assert {booking.id for booking in result.rejected} == {b.id, c.id}
    assert result.failed_ids == []

    for rejected_id in (b.id, c.id):
        row = store.get(rejected_id)
        assert row.status == BookingStatus.REJECTED
        assert row.rejection_reason == AUTO_REJECT_REASON
        last = row.status_history[-1]
        assert last.from_status == BookingStatus.PENDING
        assert last.to_status == BookingStatus.REJECTED
        assert last.reason == AUTO_REJECT_REASON

    assert store.get(untouched.id).status == BookingStatus.PENDING
    assert not holding_pairs_overlap(store)


def test_confirm_raises_one_event_per_rejected_renter(store, resolver) -> None:
    a = store.seed(date(2025, 3, 1), date(2025, 3, 10), renter_id=101)
    store.seed(date(2025, 3, 5), date(2025, 3, 12), renter_id=102)
    store.seed(date(2025, 3, 6), date(2025, 3, 8), renter_id=103)

    result = resolver.confirm_booking(a.id, OWNER)

    assert [type(event) for event in result.booking.events] == [BookingConfirmed]
    auto_rejected = [event for booking in result.rejected for event in booking.events]
    assert all(isinstance(event, BookingAutoRejected) for event in auto_rejected)
    assert sorted(event.renter_id for event in auto_rejected) == [102, 103]
    assert {event.confirmed_booking_id for event in auto_rejected} == {a.id}


def test_abutting_requests_both_confirm(store, resolver) -> None:
    first = store.seed(date(2025, 3, 1), date(2025, 3, 10))
    second = store.seed(date(2025, 3, 10), date(2025, 3, 15))

    resolver.confirm_booking(first.id, OWNER)
    result = resolver.confirm_booking(second.id, OWNER)

    assert result.booking.status == BookingStatus.CONFIRMED
    assert store.get(first.id).status == BookingStatus.CONFIRMED
    assert not holding_pairs_overlap(store)


def test_confirm_conflicting_with_confirmed_booking(store, resolver) -> None:
    held = store.seed(date(2025, 3, 1), date(2025, 3, 10), BookingStatus.ACTIVE)
    late = store.seed(date(2025, 3, 8), date(2025, 3, 12))

    with pytest.raises(DateConflict) as excinfo:
        resolver.confirm_booking(late.id, OWNER)

    assert [booking.id for booking in excinfo.value.conflicts] == [held.id]
    payload = excinfo.value.to_dict()
    assert payload["code"] == "date_conflict"
    assert payload["conflicting_bookings"][0]["check_in"] == "2025-03-01"
    assert store.get(late.id).status == BookingStatus.PENDING


@pytest.mark.parametrize(
    "status",
    [
        BookingStatus.CONFIRMED,
        BookingStatus.ACTIVE,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
    ],
)
def test_confirm_non_pending_booking_changes_nothing(store, resolver, status) -> None:
    booking = store.seed(date(2025, 3, 1), date(2025, 3, 10), status)
    competing = store.seed(date(2025, 3, 2), date(2025, 3, 4))

    with pytest.raises(InvalidTransition) as excinfo:
        resolver.confirm_booking(booking.id, OWNER)

    assert excinfo.value.current == status.value
    assert excinfo.value.attempted == BookingStatus.CONFIRMED.value
    assert store.get(booking.id).status == status
    assert store.get(booking.id).status_history == []
    assert store.get(competing.id).status == BookingStatus.PENDING


def test_confirm_missing_booking(resolver) -> None:
    with pytest.raises(BookingNotFound):
        resolver.confirm_booking(999, OWNER)


def test_confirm_loses_race_on_conditional_write(store, resolver) -> None:
    booking = store.seed(date(2025, 3, 1), date(2025, 3, 10))
    original = store.conditional_update_status

    def cancelled_meanwhile(booking_id, expected, new, entry):
        store.rows[booking_id].status = BookingStatus.CANCELLED
        return original(booking_id, expected, new, entry)

    store.conditional_update_status = cancelled_meanwhile

    with pytest.raises(InvalidTransition) as excinfo:
        resolver.confirm_booking(booking.id, OWNER)

    assert excinfo.value.current == "cancelled"


def test_cascade_write_failure_keeps_confirmation(store, resolver) -> None:
    a = store.seed(date(2025, 3, 1), date(2025, 3, 10))
    b = store.seed(date(2025, 3, 2), date(2025, 3, 4))
    c = store.seed(date(2025, 3, 5), date(2025, 3, 7))
    store.failing_ids.add(b.id)

    result = resolver.confirm_booking(a.id, OWNER)

    assert store.get(a.id).status == BookingStatus.CONFIRMED
    assert [booking.id for booking in result.rejected] == [c.id]
    assert result.failed_ids == [b.id]
    assert store.get(b.id).status == BookingStatus.PENDING


def test_cascade_bulk_failure_is_swallowed(store, resolver) -> None:
    a = store.seed(date(2025, 3, 1), date(2025, 3, 10))
    b = store.seed(date(2025, 3, 2), date(2025, 3, 4))
    store.fail_bulk = True

    result = resolver.confirm_booking(a.id, OWNER)

    assert result.booking.status == BookingStatus.CONFIRMED
    assert result.rejected == []
    assert result.failed_ids == [b.id]
    assert store.get(a.id).status == BookingStatus.CONFIRMED


def test_cascade_read_failure_is_swallowed(store, resolver) -> None:
    a = store.seed(date(2025, 3, 1), date(2025, 3, 10))
    original = store.find_bookings_by_property
    calls = []

    def fail_second_read(property_id, status_in):
        calls.append(tuple(status_in))
        if len(calls) > 1:
            raise RuntimeError("store unavailable")
        return original(property_id, status_in)

    store.find_bookings_by_property = fail_second_read

    result = resolver.confirm_booking(a.id, OWNER)

    assert result.booking.status == BookingStatus.CONFIRMED
    assert result.rejected == [] and result.failed_ids == []


def test_storage_errors_outside_cascade_propagate(store, resolver) -> None:
    store.fail_reads = True

    with pytest.raises(RuntimeError):
        resolver.is_range_available(1, date(2025, 3, 1), date(2025, 3, 10))


def test_calendar_marks_booked_days(store, resolver) -> None:
    start = date(2025, 3, 1)
    booking = store.seed(start + timedelta(days=4), start + timedelta(days=9), BookingStatus.CONFIRMED)

    days = list(resolver.build_availability_calendar(1, start, start + timedelta(days=29)))

    assert len(days) == 30
    unavailable = [day.day for day in days if not day.available]
    assert unavailable == [start + timedelta(days=offset) for offset in range(4, 9)]
    assert {day.booking_id for day in days if not day.available} == {booking.id}
    assert days[9].available and days[9].booking_id is None


def test_calendar_ignores_pending_and_allows_past_days(store, resolver) -> None:
    store.seed(date(2025, 1, 5), date(2025, 1, 8), BookingStatus.PENDING)
    store.seed(date(2025, 1, 10), date(2025, 1, 12), BookingStatus.COMPLETED)
    store.seed(date(2025, 1, 20), date(2025, 1, 22), BookingStatus.ACTIVE)

    days = list(resolver.build_availability_calendar(1, date(2025, 1, 1), date(2025, 1, 31)))

    unavailable = [day.day for day in days if not day.available]
    assert unavailable == [date(2025, 1, 20), date(2025, 1, 21)]


def test_calendar_single_day_and_inverted_window(store, resolver) -> None:
    days = list(resolver.build_availability_calendar(1, date(2025, 3, 1), date(2025, 3, 1)))
    assert [day.day for day in days] == [date(2025, 3, 1)]

    with pytest.raises(InvalidRange):
        resolver.build_availability_calendar(1, date(2025, 3, 2), date(2025, 3, 1))


def test_calendar_rereads_bookings_on_each_iteration(store, resolver) -> None:
    calendar = resolver.build_availability_calendar(1, date(2025, 3, 1), date(2025, 3, 3))
    assert all(day.available for day in calendar)

    store.seed(date(2025, 3, 2), date(2025, 3, 3), BookingStatus.CONFIRMED)

    assert [day.available for day in calendar] == [True, False, True]
    assert len(calendar) == 3
