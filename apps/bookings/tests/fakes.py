"""In-memory BookingStore for domain tests."""

from __future__ import annotations

import copy
from datetime import date, datetime
from decimal import Decimal
from itertools import count
from typing import Any, Iterable

from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus, StatusChange
from shared.domain.value_objects import DateRange, Money


class InMemoryBookingStore:
    """Keeps copies so callers never share state with the store."""

    def __init__(self) -> None:
        self.rows: dict[Any, Booking] = {}
        self._ids = count(1)
        self.failing_ids: set[Any] = set()
        self.fail_reads = False
        self.fail_bulk = False

    def get(self, booking_id: Any) -> Booking | None:
        row = self.rows.get(booking_id)
        return copy.deepcopy(row) if row is not None else None

    def add(self, booking: Booking) -> Booking:
        booking.id = next(self._ids)
        booking.booking_code = booking.booking_code or f"BK-TEST-{booking.id}"
        self.rows[booking.id] = copy.deepcopy(booking)
        return booking

    def find_bookings_by_property(self, property_id: Any, status_in: Iterable[BookingStatus]) -> list[Booking]:
        if self.fail_reads:
            raise RuntimeError("store unavailable")
        statuses = set(status_in)
        return [
            copy.deepcopy(row)
            for row in self.rows.values()
            if row.property_id == property_id and row.status in statuses
        ]

    def conditional_update_status(
        self,
        booking_id: Any,
        expected_status: BookingStatus,
        new_status: BookingStatus,
        entry: StatusChange,
    ) -> bool:
        if booking_id in self.failing_ids:
            raise RuntimeError(f"write failed for {booking_id}")
        row = self.rows.get(booking_id)
        if row is None or row.status != expected_status:
            return False
        row.apply(entry)
        return True

    def bulk_update_status(
        self,
        booking_ids: Iterable[Any],
        expected_status: BookingStatus,
        new_status: BookingStatus,
        entry: StatusChange,
    ) -> list[Any]:
        if self.fail_bulk:
            raise RuntimeError("bulk write failed")
        moved = []
        for booking_id in booking_ids:
            try:
                if self.conditional_update_status(booking_id, expected_status, new_status, entry):
                    moved.append(booking_id)
            except RuntimeError:
                continue
        return moved

    def conditional_update_payment(
        self,
        booking_id: Any,
        expected: PaymentStatus,
        new: PaymentStatus,
        at: datetime,
    ) -> bool:
        row = self.rows.get(booking_id)
        if row is None or row.payment_status != expected:
            return False
        row.payment_status = new
        if new == PaymentStatus.PAID:
            row.paid_at = at
        elif new == PaymentStatus.REFUNDED:
            row.refunded_at = at
        return True

    # ----- helpers -----

    def seed(
        self,
        check_in: date,
        check_out: date,
        status: BookingStatus = BookingStatus.PENDING,
        *,
        property_id: Any = 1,
        renter_id: Any = 100,
        owner_id: Any = 200,
    ) -> Booking:
        booking = Booking(
            property_id=property_id,
            renter_id=renter_id,
            owner_id=owner_id,
            dates=DateRange(check_in, check_out),
            total_amount=Money(Decimal("1000.00")),
            status=status,
        )
        return self.add(booking)
