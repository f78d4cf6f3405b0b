"""Tests for property listing and editing."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.properties.models import Property
from apps.users.models import User


class PropertyAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            phone="+94770000001",
            password="StrongPass123",
            role=User.RoleChoices.OWNER,
        )
        self.renter = User.objects.create_user(
            email="renter@example.com",
            password="StrongPass123",
            role=User.RoleChoices.RENTER,
        )
        self.property = Property.objects.create(
            owner=self.owner,
            title="Garden annex in Nugegoda",
            description="Two rooms with a private entrance",
            city="Colombo",
            address="12 Temple Road",
            status=Property.Status.APPROVED,
            monthly_rent=Decimal("60000.00"),
            security_deposit=Decimal("20000.00"),
        )
        self.hidden = Property.objects.create(
            owner=self.owner,
            title="Waiting for review",
            city="Kandy",
            address="4 Lake Drive",
            status=Property.Status.PENDING,
            monthly_rent=Decimal("45000.00"),
        )

    def test_public_list_shows_only_approved(self) -> None:
        response = self.client.get(reverse("property-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        ids = [item["id"] for item in response.data["results"]]
        self.assertEqual(ids, [self.property.id])

    def test_owner_sees_own_pending_listing(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.get(reverse("property-list"))
        self.assertEqual(response.data["count"], 2)

    def test_filter_by_city(self) -> None:
        response = self.client.get(reverse("property-list"), {"city": "colombo"})
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["count"], 1)

    def test_detail_includes_daily_price(self) -> None:
        response = self.client.get(reverse("property-detail", args=[self.property.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(Decimal(response.data["daily_price"]), Decimal("2000.00"))
        self.assertTrue(response.data["is_bookable"])

    def test_owner_creates_listing_pending_review(self) -> None:
        self.client.force_authenticate(self.owner)
        payload = {
            "title": "Sea view flat",
            "city": "Galle",
            "address": "1 Fort Street",
            "monthly_rent": "90000.00",
            "security_deposit": "90000.00",
            "monthly_discount": "5.00",
            "min_months_for_discount": 6,
        }
        response = self.client.post(reverse("property-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        created = Property.objects.get(pk=response.data["id"])
        self.assertEqual(created.owner, self.owner)
        self.assertEqual(created.status, Property.Status.PENDING)
        self.assertEqual(created.currency, "LKR")

    def test_renter_cannot_create_listing(self) -> None:
        self.client.force_authenticate(self.renter)
        payload = {"title": "x", "city": "y", "address": "z", "monthly_rent": "1000.00"}
        response = self.client.post(reverse("property-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_fields_are_rejected(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.patch(
            reverse("property-detail", args=[self.property.id]),
            {"monthly_rnt": "1.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("monthly_rnt", response.data)

    def test_owner_cannot_self_approve(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.patch(
            reverse("property-detail", args=[self.hidden.id]),
            {"status": "approved"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.hidden.refresh_from_db()
        self.assertEqual(self.hidden.status, Property.Status.PENDING)

    def test_owner_toggles_availability(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.patch(
            reverse("property-detail", args=[self.property.id]),
            {"is_available": False},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["is_bookable"])

    def test_other_owner_cannot_edit(self) -> None:
        other = User.objects.create_user(
            email="other-owner@example.com",
            password="StrongPass123",
            role=User.RoleChoices.OWNER,
        )
        self.client.force_authenticate(other)
        response = self.client.patch(
            reverse("property-detail", args=[self.property.id]),
            {"title": "Mine now"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def _booking(self, booking_status) -> Booking:
        check_in = timezone.localdate() + timedelta(days=10)
        return Booking.objects.create(
            property=self.property,
            renter=self.renter,
            owner=self.owner,
            check_in=check_in,
            check_out=check_in + timedelta(days=30),
            status=booking_status,
            total_amount=Decimal("80000.00"),
        )

    def test_owner_deletes_listing_without_open_bookings(self) -> None:
        self._booking(Booking.Status.COMPLETED)
        self._booking(Booking.Status.CANCELLED)
        self.client.force_authenticate(self.owner)

        response = self.client.delete(reverse("property-detail", args=[self.property.id]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.property.refresh_from_db()
        self.assertFalse(self.property.is_active)
        self.assertFalse(self.property.is_bookable)
        self.assertEqual(self.property.bookings.count(), 2)

        self.client.force_authenticate(None)
        listing = self.client.get(reverse("property-list"))
        self.assertNotIn(self.property.id, [item["id"] for item in listing.data["results"]])

    def test_delete_refused_while_bookings_are_open(self) -> None:
        self._booking(Booking.Status.PENDING)
        self._booking(Booking.Status.CONFIRMED)
        self.client.force_authenticate(self.owner)

        response = self.client.delete(reverse("property-detail", args=[self.property.id]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "property_has_bookings")
        self.assertEqual(response.data["active_bookings"], 2)
        self.property.refresh_from_db()
        self.assertTrue(self.property.is_active)

    def test_renter_cannot_delete_listing(self) -> None:
        self.client.force_authenticate(self.renter)

        response = self.client.delete(reverse("property-detail", args=[self.property.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.property.refresh_from_db()
        self.assertTrue(self.property.is_active)
