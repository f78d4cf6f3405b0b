from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.tasks import (
    activate_started_bookings,
    complete_finished_bookings,
    notify_booking_event,
)
from apps.notifications.models import Notification
from apps.properties.models import Property
from apps.users.models import User


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        email="task-owner@example.com", password="OwnerPass123", role=User.RoleChoices.OWNER
    )


@pytest.fixture
def renter(db):
    return User.objects.create_user(
        email="task-renter@example.com", password="RenterPass123", first_name="Nimal", last_name="Perera"
    )


@pytest.fixture
def rental(owner):
    return Property.objects.create(
        owner=owner,
        title="Tea estate bungalow",
        city="Ella",
        address="Passara Road",
        status=Property.Status.APPROVED,
        monthly_rent=Decimal("45000.00"),
    )


def make_booking(rental, renter, start_offset, nights, status):
    today = timezone.localdate()
    return Booking.objects.create(
        property=rental,
        renter=renter,
        owner=rental.owner,
        check_in=today + timedelta(days=start_offset),
        check_out=today + timedelta(days=start_offset + nights),
        status=status,
        total_amount=Decimal("1000.00"),
    )


def test_activate_started_bookings(rental, renter):
    due = make_booking(rental, renter, 0, 5, Booking.Status.CONFIRMED)
    future = make_booking(rental, renter, 10, 5, Booking.Status.CONFIRMED)
    pending = make_booking(rental, renter, -1, 5, Booking.Status.PENDING)

    result = activate_started_bookings()

    assert result == {"activated": 1, "failed": 0}
    due.refresh_from_db()
    future.refresh_from_db()
    pending.refresh_from_db()
    assert due.status == Booking.Status.ACTIVE
    assert due.status_history[-1]["by"] is None
    assert future.status == Booking.Status.CONFIRMED
    assert pending.status == Booking.Status.PENDING


def test_complete_finished_bookings(rental, renter):
    finished = make_booking(rental, renter, -10, 10, Booking.Status.ACTIVE)
    ongoing = make_booking(rental, renter, -2, 10, Booking.Status.ACTIVE)

    result = complete_finished_bookings()

    assert result == {"completed": 1, "failed": 0}
    finished.refresh_from_db()
    ongoing.refresh_from_db()
    assert finished.status == Booking.Status.COMPLETED
    assert finished.completed_at is not None
    assert ongoing.status == Booking.Status.ACTIVE


def test_request_notifies_owner_and_renter(rental, renter):
    booking = make_booking(rental, renter, 5, 30, Booking.Status.PENDING)

    assert notify_booking_event(booking.id, "requested") == 2

    owner_note = Notification.objects.get(user=rental.owner)
    assert owner_note.type == "booking_request"
    assert owner_note.priority == Notification.Priority.HIGH
    assert owner_note.message == 'Nimal Perera wants to book "Tea estate bungalow"'
    assert owner_note.action_url == f"/owner/bookings/{booking.id}"
    assert owner_note.sender == renter
    assert owner_note.data["booking_code"] == booking.booking_code

    renter_note = Notification.objects.get(user=renter)
    assert renter_note.type == "booking_submitted"
    assert renter_note.title == "Booking Request Sent!"


def test_renter_cancellation_notifies_owner(rental, renter):
    booking = make_booking(rental, renter, 5, 30, Booking.Status.CANCELLED)

    notify_booking_event(booking.id, "cancelled", {"actor_id": renter.pk, "reason": "Found another place"})

    note = Notification.objects.get()
    assert note.user == rental.owner
    assert note.message.endswith(": Found another place")


def test_missing_booking_sends_nothing(db):
    assert notify_booking_event(999999, "confirmed") == 0
    assert not Notification.objects.exists()


def test_lifecycle_tasks_are_scheduled_hourly():
    from config.celery import app

    schedule = app.conf.beat_schedule
    for name in ("activate-started-bookings", "complete-finished-bookings"):
        assert schedule[name]["schedule"].hour == set(range(24))
    assert schedule["purge-expired-notifications"]["schedule"].hour == {3}
