"""Tests for the ORM-backed booking store."""

from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError
from django.utils import timezone

from apps.bookings.application.command_handlers import (
    ConfirmBookingCommand,
    ConfirmBookingHandler,
)
from apps.bookings.domain.entities import (
    AUTO_REJECT_REASON,
    BookingStatus,
    PaymentStatus,
    StatusChange,
)
from apps.bookings.models import Booking
from apps.bookings.repositories import DjangoBookingStore
from apps.properties.models import Property
from apps.users.models import User


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        email="store-owner@example.com", password="OwnerPass123", role=User.RoleChoices.OWNER
    )


@pytest.fixture
def renter(db):
    return User.objects.create_user(email="store-renter@example.com", password="RenterPass123")


@pytest.fixture
def rental(owner):
    return Property.objects.create(
        owner=owner,
        title="Hill country cottage",
        city="Nuwara Eliya",
        address="7 Gregory Road",
        status=Property.Status.APPROVED,
        monthly_rent=Decimal("75000.00"),
    )


@pytest.fixture
def store():
    return DjangoBookingStore()


def make_booking(rental, renter, start_offset, nights, status=Booking.Status.PENDING):
    today = timezone.localdate()
    return Booking.objects.create(
        property=rental,
        renter=renter,
        owner=rental.owner,
        check_in=today + timedelta(days=start_offset),
        check_out=today + timedelta(days=start_offset + nights),
        status=status,
        total_amount=Decimal("1000.00"),
        status_history=[
            {"from": "pending", "to": "pending", "by": None, "reason": "seeded", "notes": "",
             "at": timezone.now().isoformat()},
        ],
    )


def rejection(owner):
    return StatusChange(
        from_status=BookingStatus.PENDING,
        to_status=BookingStatus.REJECTED,
        actor=owner.pk,
        reason=AUTO_REJECT_REASON,
    )


def failing_for(booking_id):
    """Wrap the per-row write so it raises for one booking only."""
    original = DjangoBookingStore._write_transition

    def write(self, target_id, *args, **kwargs):
        if target_id == booking_id:
            raise DatabaseError("could not write row")
        return original(self, target_id, *args, **kwargs)

    return mock.patch.object(DjangoBookingStore, "_write_transition", write)


def test_conditional_update_appends_history_and_stamps_columns(store, rental, renter, owner):
    booking = make_booking(rental, renter, 10, 5)
    entry = StatusChange(
        from_status=BookingStatus.PENDING,
        to_status=BookingStatus.REJECTED,
        actor=owner.pk,
        reason="Under renovation",
    )

    assert store.conditional_update_status(booking.pk, BookingStatus.PENDING, BookingStatus.REJECTED, entry)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.REJECTED
    assert booking.rejection_reason == "Under renovation"
    assert booking.rejected_at == entry.at
    assert [item["reason"] for item in booking.status_history] == ["seeded", "Under renovation"]
    assert booking.status_history[-1]["by"] == str(owner.pk)


def test_conditional_update_skips_moved_status(store, rental, renter, owner):
    booking = make_booking(rental, renter, 10, 5, Booking.Status.CONFIRMED)

    assert not store.conditional_update_status(
        booking.pk, BookingStatus.PENDING, BookingStatus.REJECTED, rejection(owner)
    )

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CONFIRMED
    assert len(booking.status_history) == 1
    assert booking.rejected_at is None


def test_bulk_update_skips_bookings_no_longer_pending(store, rental, renter, owner):
    pending = make_booking(rental, renter, 10, 5)
    cancelled = make_booking(rental, renter, 12, 5, Booking.Status.CANCELLED)

    moved = store.bulk_update_status(
        [pending.pk, cancelled.pk], BookingStatus.PENDING, BookingStatus.REJECTED, rejection(owner)
    )

    assert moved == [pending.pk]
    cancelled.refresh_from_db()
    assert cancelled.status == Booking.Status.CANCELLED


def test_bulk_update_keeps_other_rows_when_one_write_fails(store, rental, renter, owner):
    first = make_booking(rental, renter, 10, 5)
    broken = make_booking(rental, renter, 11, 5)
    last = make_booking(rental, renter, 12, 5)

    with failing_for(broken.pk):
        moved = store.bulk_update_status(
            [first.pk, broken.pk, last.pk], BookingStatus.PENDING, BookingStatus.REJECTED, rejection(owner)
        )

    assert moved == [first.pk, last.pk]
    statuses = dict(Booking.objects.filter(pk__in=[first.pk, broken.pk, last.pk]).values_list("pk", "status"))
    assert statuses == {
        first.pk: Booking.Status.REJECTED,
        broken.pk: Booking.Status.PENDING,
        last.pk: Booking.Status.REJECTED,
    }


def test_bulk_update_survives_a_failed_read(store, rental, renter, owner):
    unreadable = make_booking(rental, renter, 10, 5)
    readable = make_booking(rental, renter, 11, 5)
    original = DjangoBookingStore._transition_if_current

    def transition(self, booking_id, *args, **kwargs):
        if booking_id == unreadable.pk:
            raise DatabaseError("could not read row")
        return original(self, booking_id, *args, **kwargs)

    with mock.patch.object(DjangoBookingStore, "_transition_if_current", transition):
        moved = store.bulk_update_status(
            [unreadable.pk, readable.pk], BookingStatus.PENDING, BookingStatus.REJECTED, rejection(owner)
        )

    assert moved == [readable.pk]
    assert Booking.objects.get(pk=readable.pk).status == Booking.Status.REJECTED


def test_confirmation_survives_cascade_write_failure(rental, renter, owner):
    accepted = make_booking(rental, renter, 10, 10)
    overlapping = make_booking(rental, renter, 15, 10)
    broken = make_booking(rental, renter, 12, 3)

    with failing_for(broken.pk):
        result = ConfirmBookingHandler(DjangoBookingStore()).handle(
            ConfirmBookingCommand(booking_id=accepted.pk, actor_id=owner.pk)
        )

    assert [item.id for item in result.rejected] == [overlapping.pk]
    assert result.failed_ids == [broken.pk]

    accepted.refresh_from_db()
    overlapping.refresh_from_db()
    broken.refresh_from_db()
    assert accepted.status == Booking.Status.CONFIRMED
    assert accepted.confirmed_at is not None
    assert overlapping.status == Booking.Status.REJECTED
    assert overlapping.rejection_reason == AUTO_REJECT_REASON
    assert broken.status == Booking.Status.PENDING


def test_conditional_payment_update(store, rental, renter):
    booking = make_booking(rental, renter, 10, 5, Booking.Status.CONFIRMED)
    paid_at = timezone.now()

    assert store.conditional_update_payment(booking.pk, PaymentStatus.PENDING, PaymentStatus.PAID, paid_at)
    assert not store.conditional_update_payment(booking.pk, PaymentStatus.PENDING, PaymentStatus.PAID, paid_at)

    entity = store.get(booking.pk)
    assert entity.payment_status == PaymentStatus.PAID
    assert entity.paid_at == paid_at
    assert entity.refunded_at is None
