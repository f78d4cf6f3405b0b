"""Tests for the property availability calendar and range check API."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.properties.models import Property
from apps.users.models import User


class PropertyCalendarAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner-calendar@example.com",
            password="StrongPass123",
            role=User.RoleChoices.OWNER,
        )
        self.renter = User.objects.create_user(
            email="renter-calendar@example.com",
            password="StrongPass123",
        )
        self.property = Property.objects.create(
            owner=self.owner,
            title="Hill cottage",
            city="Nuwara Eliya",
            address="7 Gregory Road",
            status=Property.Status.APPROVED,
            monthly_rent=Decimal("30000.00"),
        )

    def _booking(self, check_in: date, check_out: date, booking_status: str) -> Booking:
        return Booking.objects.create(
            property=self.property,
            renter=self.renter,
            owner=self.owner,
            check_in=check_in,
            check_out=check_out,
            status=booking_status,
            total_amount=Decimal("1000.00"),
        )

    def _calendar_url(self):
        return reverse("property-calendar", args=[self.property.id])

    def _availability_url(self):
        return reverse("property-availability", args=[self.property.id])

    def test_calendar_marks_confirmed_days(self) -> None:
        start = date(2025, 1, 1)
        booking = self._booking(date(2025, 1, 5), date(2025, 1, 10), Booking.Status.CONFIRMED)

        response = self.client.get(self._calendar_url(), {"start": "2025-01-01", "end": "2025-01-30"})
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

        days = response.data["days"]
        self.assertEqual(len(days), 30)
        unavailable = [day["date"] for day in days if not day["available"]]
        self.assertEqual(
            unavailable,
            [(start + timedelta(days=offset)).isoformat() for offset in range(4, 9)],
        )
        # Check-out day is free again
        self.assertTrue(days[9]["available"])
        self.assertEqual(Decimal(days[0]["price"]), Decimal("1000.00"))
        # Anonymous callers do not see booking ids
        self.assertIsNone(days[4]["booking_id"])

        self.client.force_authenticate(self.owner)
        response = self.client.get(self._calendar_url(), {"start": "2025-01-01", "end": "2025-01-30"})
        self.assertEqual(response.data["days"][4]["booking_id"], booking.id)

    def test_calendar_ignores_pending_and_terminal_bookings(self) -> None:
        self._booking(date(2025, 2, 1), date(2025, 2, 5), Booking.Status.PENDING)
        self._booking(date(2025, 2, 1), date(2025, 2, 5), Booking.Status.CANCELLED)
        self._booking(date(2025, 2, 1), date(2025, 2, 5), Booking.Status.REJECTED)

        response = self.client.get(self._calendar_url(), {"start": "2025-02-01", "end": "2025-02-07"})
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(all(day["available"] for day in response.data["days"]))

    def test_calendar_defaults_to_ninety_days(self) -> None:
        response = self.client.get(self._calendar_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(len(response.data["days"]), 90)
        self.assertEqual(response.data["days"][0]["date"], timezone.localdate().isoformat())

    def test_calendar_single_day(self) -> None:
        response = self.client.get(self._calendar_url(), {"start": "2025-03-01", "end": "2025-03-01"})
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(len(response.data["days"]), 1)

    def test_calendar_inverted_range(self) -> None:
        response = self.client.get(self._calendar_url(), {"start": "2025-03-10", "end": "2025-03-01"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_range")

    @override_settings(BOOKING_CALENDAR_MAX_DAYS=31)
    def test_calendar_window_is_capped(self) -> None:
        response = self.client.get(self._calendar_url(), {"start": "2025-01-01", "end": "2025-03-01"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("end", response.data)

    def test_availability_half_open_ranges(self) -> None:
        today = timezone.localdate()
        self._booking(today + timedelta(days=10), today + timedelta(days=19), Booking.Status.CONFIRMED)

        overlapping = self.client.get(
            self._availability_url(),
            {
                "check_in": (today + timedelta(days=14)).isoformat(),
                "check_out": (today + timedelta(days=24)).isoformat(),
            },
        )
        self.assertEqual(overlapping.status_code, status.HTTP_200_OK, overlapping.data)
        self.assertFalse(overlapping.data["available"])

        abutting = self.client.get(
            self._availability_url(),
            {
                "check_in": (today + timedelta(days=19)).isoformat(),
                "check_out": (today + timedelta(days=24)).isoformat(),
            },
        )
        self.assertTrue(abutting.data["available"])

    def test_availability_counts_pending_requests(self) -> None:
        today = timezone.localdate()
        self._booking(today + timedelta(days=3), today + timedelta(days=6), Booking.Status.PENDING)

        response = self.client.get(
            self._availability_url(),
            {
                "check_in": (today + timedelta(days=4)).isoformat(),
                "check_out": (today + timedelta(days=5)).isoformat(),
            },
        )
        self.assertFalse(response.data["available"])

    def test_availability_rejects_past_and_inverted_ranges(self) -> None:
        today = timezone.localdate()
        past = self.client.get(
            self._availability_url(),
            {
                "check_in": (today - timedelta(days=1)).isoformat(),
                "check_out": (today + timedelta(days=3)).isoformat(),
            },
        )
        self.assertEqual(past.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(past.data["code"], "past_date")

        same_day = self.client.get(
            self._availability_url(),
            {"check_in": today.isoformat(), "check_out": today.isoformat()},
        )
        self.assertEqual(same_day.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(same_day.data["code"], "invalid_range")

    def test_unapproved_property_calendar_is_hidden(self) -> None:
        self.property.status = Property.Status.PENDING
        self.property.save(update_fields=["status"])
        response = self.client.get(self._calendar_url())
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
