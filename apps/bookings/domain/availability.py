"""
Booking Availability & Conflict Resolver

Decides whether a date range is bookable for a property and, when a booking
is confirmed, rejects every competing pending request for overlapping dates.
Request creation, acceptance and the availability calendar all go through
this module so they share one overlap rule.

Overlap is half-open: [a1, a2) and [b1, b2) conflict iff a1 < b2 and b1 < a2.
A check-out equal to another booking's check-in is not a conflict.

Concurrency: confirm_booking re-checks availability and then writes with a
conditional update on the booking's own status. That prevents confirming the
same booking twice, but two different overlapping pending bookings confirmed
at the same moment can both succeed. Closing that gap needs property-level
locking, which is not done here.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Iterator, List, Sequence
import logging

from shared.domain.value_objects import DateRange

from apps.bookings.domain.entities import (
    AUTO_REJECT_REASON,
    BLOCKING_STATUSES,
    HOLDING_STATUSES,
    Booking,
    BookingStatus,
    StatusChange,
)
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    DateConflict,
    InvalidRange,
    InvalidTransition,
    PastDate,
)
from apps.bookings.domain.store import BookingStore

logger = logging.getLogger(__name__)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open interval overlap; touching boundaries do not overlap"""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class CalendarDay:
    day: date
    available: bool
    booking_id: Any = None


@dataclass
class ConfirmationResult:
    """
    Outcome of confirm_booking

    failed_ids lists competing requests the cascade could not move, either
    because storage failed or because they left pending in the meantime.
    """
    booking: Booking
    rejected: List[Booking] = field(default_factory=list)
    failed_ids: List[Any] = field(default_factory=list)


class AvailabilityCalendar:
    """
    Day-by-day availability over [from_date, to_date], both inclusive

    Iterating reads the current bookings and yields lazily; iterating again
    reads them again. Past days use the same containment test as future ones.
    """

    def __init__(self, store: BookingStore, property_id: Any, from_date: date, to_date: date):
        self._store = store
        self.property_id = property_id
        self.from_date = from_date
        self.to_date = to_date

    def __iter__(self) -> Iterator[CalendarDay]:
        window_end = self.to_date + timedelta(days=1)
        holding = [
            booking
            for booking in self._store.find_bookings_by_property(self.property_id, HOLDING_STATUSES)
            if booking.status in HOLDING_STATUSES
            and ranges_overlap(booking.dates.start_date, booking.dates.end_date, self.from_date, window_end)
        ]
        holding.sort(key=lambda b: b.dates.start_date)

        current = self.from_date
        while current <= self.to_date:
            taken_by = next((b for b in holding if b.dates.contains(current)), None)
            yield CalendarDay(
                day=current,
                available=taken_by is None,
                booking_id=taken_by.id if taken_by else None,
            )
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.to_date - self.from_date).days + 1


class AvailabilityResolver:
    """
    Availability checks and confirmation with auto-rejection cascade

    Args:
        store: BookingStore implementation
        today: callable returning the current date at the property's
               granularity (days); injected so tests can pin it
    """

    def __init__(self, store: BookingStore, today: Callable[[], date] = date.today):
        self._store = store
        self._today = today

    # ----- availability -----

    def validate_range(self, check_in: date, check_out: date, *, allow_past: bool = False) -> DateRange:
        if check_in >= check_out:
            raise InvalidRange(check_in, check_out)
        if not allow_past:
            today = self._today()
            if check_in < today:
                raise PastDate(check_in, today)
        return DateRange(check_in, check_out)

    def find_conflicts(
        self,
        property_id: Any,
        check_in: date,
        check_out: date,
        exclude_booking_id: Any = None,
        *,
        statuses: Sequence[BookingStatus] = BLOCKING_STATUSES,
        allow_past: bool = False,
    ) -> List[Booking]:
        """Bookings in `statuses` that overlap the candidate range"""
        dates = self.validate_range(check_in, check_out, allow_past=allow_past)
        return self._overlapping(property_id, dates, statuses, exclude_booking_id)

    def is_range_available(
        self,
        property_id: Any,
        check_in: date,
        check_out: date,
        exclude_booking_id: Any = None,
        *,
        statuses: Sequence[BookingStatus] = BLOCKING_STATUSES,
        allow_past: bool = False,
    ) -> bool:
        """
        Whether the range is free for the property

        Raises:
            InvalidRange: check_in >= check_out
            PastDate: check_in before today (unless allow_past)
        """
        conflicts = self.find_conflicts(
            property_id,
            check_in,
            check_out,
            exclude_booking_id,
            statuses=statuses,
            allow_past=allow_past,
        )
        return not conflicts

    def _overlapping(self, property_id: Any, dates: DateRange,
                     statuses: Iterable[BookingStatus], exclude_booking_id: Any = None) -> List[Booking]:
        statuses = tuple(statuses)
        found = [
            booking
            for booking in self._store.find_bookings_by_property(property_id, statuses)
            if booking.status in statuses
            and (exclude_booking_id is None or booking.id != exclude_booking_id)
            and booking.overlaps(dates)
        ]
        found.sort(key=lambda b: (b.dates.start_date, str(b.id)))
        return found

    # ----- confirmation -----

    def confirm_booking(self, booking_id: Any, actor: Any) -> ConfirmationResult:
        """
        Confirm a pending booking and reject competing pending requests

        Raises:
            BookingNotFound: no such booking
            InvalidTransition: booking is not pending, or stopped being
                pending before the conditional write landed
            DateConflict: a confirmed/active booking already holds
                overlapping dates; carries those bookings
        """
        booking = self._store.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)

        if booking.status != BookingStatus.PENDING:
            raise InvalidTransition(booking.status.value, BookingStatus.CONFIRMED.value, booking.id)

        # Advisory: the conditional write below is the authoritative guard
        conflicts = self._overlapping(
            booking.property_id, booking.dates, HOLDING_STATUSES, exclude_booking_id=booking.id
        )
        if conflicts:
            raise DateConflict(
                conflicts,
                "Cannot accept booking due to date conflicts with existing bookings",
            )

        entry = booking.confirm(actor)
        if not self._store.conditional_update_status(booking.id, entry.from_status, entry.to_status, entry):
            current = self._store.get(booking.id)
            current_status = current.status.value if current else 'missing'
            raise InvalidTransition(current_status, BookingStatus.CONFIRMED.value, booking.id)

        logger.info(f"Booking {booking.id} confirmed for {booking.dates} by {actor}")

        rejected, failed_ids = self._reject_competing_requests(booking, actor)
        return ConfirmationResult(booking=booking, rejected=rejected, failed_ids=failed_ids)

    def _reject_competing_requests(self, confirmed: Booking, actor: Any):
        """
        Auto-rejection cascade

        Best effort: storage errors are logged and swallowed. The
        confirmation has already been written and stays in place; a stale
        pending request is caught again when someone tries to confirm it.
        """
        try:
            competing = self._overlapping(
                confirmed.property_id,
                confirmed.dates,
                (BookingStatus.PENDING,),
                exclude_booking_id=confirmed.id,
            )
        except Exception as e:
            logger.error(
                f"Could not load competing requests for booking {confirmed.id}: {e}",
                exc_info=True,
            )
            return [], []

        if not competing:
            return [], []

        entry = StatusChange(
            from_status=BookingStatus.PENDING,
            to_status=BookingStatus.REJECTED,
            actor=actor,
            reason=AUTO_REJECT_REASON,
        )
        competing_ids = [b.id for b in competing]

        try:
            moved = set(self._store.bulk_update_status(
                competing_ids, BookingStatus.PENDING, BookingStatus.REJECTED, entry
            ))
        except Exception as e:
            logger.error(
                f"Auto-rejection cascade failed for booking {confirmed.id} "
                f"({len(competing_ids)} requests left pending): {e}",
                exc_info=True,
            )
            return [], competing_ids

        rejected: List[Booking] = []
        failed_ids: List[Any] = []
        for booking in competing:
            if booking.id in moved:
                booking.apply_auto_rejection(entry, confirmed.id)
                rejected.append(booking)
            else:
                failed_ids.append(booking.id)

        if rejected:
            logger.info(
                f"Auto-rejected {len(rejected)} conflicting requests after confirming booking {confirmed.id}"
            )
        if failed_ids:
            logger.warning(f"Cascade left {len(failed_ids)} requests untouched: {failed_ids}")

        return rejected, failed_ids

    # ----- calendar -----

    def build_availability_calendar(self, property_id: Any, from_date: date, to_date: date) -> AvailabilityCalendar:
        """
        Lazy calendar over [from_date, to_date]

        Raises:
            InvalidRange: from_date after to_date
        """
        if from_date > to_date:
            raise InvalidRange(from_date, to_date)
        return AvailabilityCalendar(self._store, property_id, from_date, to_date)
