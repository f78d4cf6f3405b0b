"""
Django implementation of the booking store

Maps ORM rows to Booking aggregates and performs the conditional status
writes the availability resolver relies on.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.value_objects import DateRange, Money

from apps.bookings import models as orm
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    DurationType,
    PaymentStatus,
    StatusChange,
)

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMNS = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.ACTIVE: "activated_at",
    BookingStatus.REJECTED: "rejected_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.COMPLETED: "completed_at",
}

PAYMENT_TIMESTAMP_COLUMNS = {
    PaymentStatus.PAID: "paid_at",
    PaymentStatus.REFUNDED: "refunded_at",
}


class DjangoBookingStore:
    """BookingStore backed by the bookings table"""

    def get(self, booking_id: Any) -> Optional[Booking]:
        row = orm.Booking.objects.filter(pk=booking_id).first()
        return to_entity(row) if row else None

    def add(self, booking: Booking) -> Booking:
        row = orm.Booking(
            property_id=booking.property_id,
            renter_id=booking.renter_id,
            owner_id=booking.owner_id,
            check_in=booking.dates.start_date,
            check_out=booking.dates.end_date,
            duration=booking.duration,
            duration_type=booking.duration_type.value,
            status=booking.status.value,
            payment_status=booking.payment_status.value,
            monthly_rent=_amount(booking.monthly_rent),
            rent_amount=_amount(booking.rent_amount),
            security_deposit=_amount(booking.security_deposit),
            total_amount=booking.total_amount.amount,
            currency=booking.total_amount.currency,
            special_requests=booking.special_requests,
            renter_phone=booking.renter_phone,
            status_history=[entry.to_dict() for entry in booking.status_history],
        )
        if booking.booking_code:
            row.booking_code = booking.booking_code
        row.save()

        booking.id = row.pk
        booking.booking_code = row.booking_code
        booking.created_at = row.created_at
        booking.updated_at = row.updated_at
        return booking

    def find_bookings_by_property(self, property_id: Any,
                                  status_in: Iterable[BookingStatus]) -> List[Booking]:
        statuses = [status.value for status in status_in]
        # Savepoint keeps the caller's transaction usable if the read fails
        with transaction.atomic():
            rows = list(
                orm.Booking.objects.filter(property_id=property_id, status__in=statuses).order_by("check_in", "pk")
            )
        return [to_entity(row) for row in rows]

    def conditional_update_status(self, booking_id: Any, expected_status: BookingStatus,
                                  new_status: BookingStatus, entry: StatusChange) -> bool:
        return self._transition_if_current(booking_id, expected_status, new_status, entry)

    def bulk_update_status(self, booking_ids: Iterable[Any], expected_status: BookingStatus,
                           new_status: BookingStatus, entry: StatusChange) -> List[Any]:
        moved: List[Any] = []
        for booking_id in booking_ids:
            try:
                # Savepoint per row covers the read and the write, so a failure
                # leaves the other rows and the caller's transaction usable
                with transaction.atomic():
                    if self._transition_if_current(booking_id, expected_status, new_status, entry):
                        moved.append(booking_id)
            except Exception as e:
                logger.error(f"Failed to move booking {booking_id} to {new_status.value}: {e}", exc_info=True)
        return moved

    def conditional_update_payment(self, booking_id: Any, expected: PaymentStatus,
                                   new: PaymentStatus, at: datetime) -> bool:
        changes = {"payment_status": new.value, "updated_at": timezone.now()}
        column = PAYMENT_TIMESTAMP_COLUMNS.get(new)
        if column:
            changes[column] = at
        updated = orm.Booking.objects.filter(pk=booking_id, payment_status=expected.value).update(**changes)
        return updated == 1

    def _transition_if_current(self, booking_id: Any, expected_status: BookingStatus,
                               new_status: BookingStatus, entry: StatusChange) -> bool:
        history = (
            orm.Booking.objects.filter(pk=booking_id, status=expected_status.value)
            .values_list("status_history", flat=True)
            .first()
        )
        if history is None:
            return False
        return self._write_transition(booking_id, expected_status, new_status, entry, history)

    def _write_transition(self, booking_id: Any, expected_status: BookingStatus,
                          new_status: BookingStatus, entry: StatusChange, history: list) -> bool:
        # Status only moves forward, so an unchanged status means an unchanged history
        changes = {
            "status": new_status.value,
            "status_history": list(history or []) + [entry.to_dict()],
            "updated_at": timezone.now(),
        }
        column = TIMESTAMP_COLUMNS.get(new_status)
        if column:
            changes[column] = entry.at
        if new_status == BookingStatus.REJECTED:
            changes["rejection_reason"] = entry.reason
        elif new_status == BookingStatus.CANCELLED:
            changes["cancellation_reason"] = entry.reason
        elif new_status == BookingStatus.COMPLETED:
            changes["completion_notes"] = entry.notes

        updated = orm.Booking.objects.filter(pk=booking_id, status=expected_status.value).update(**changes)
        return updated == 1


def _amount(money: Optional[Money]):
    return money.amount if money is not None else 0


def to_entity(row: orm.Booking) -> Booking:
    currency = row.currency
    return Booking(
        id=row.pk,
        property_id=row.property_id,
        renter_id=row.renter_id,
        owner_id=row.owner_id,
        dates=DateRange(row.check_in, row.check_out),
        total_amount=Money(row.total_amount, currency),
        booking_code=row.booking_code,
        status=BookingStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        duration=row.duration,
        duration_type=DurationType(row.duration_type),
        monthly_rent=Money(row.monthly_rent, currency),
        rent_amount=Money(row.rent_amount, currency),
        security_deposit=Money(row.security_deposit, currency),
        special_requests=row.special_requests,
        renter_phone=row.renter_phone,
        status_history=[StatusChange.from_dict(item) for item in row.status_history or []],
        rejection_reason=row.rejection_reason,
        cancellation_reason=row.cancellation_reason,
        completion_notes=row.completion_notes,
        confirmed_at=row.confirmed_at,
        activated_at=row.activated_at,
        rejected_at=row.rejected_at,
        cancelled_at=row.cancelled_at,
        completed_at=row.completed_at,
        paid_at=row.paid_at,
        refunded_at=row.refunded_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
