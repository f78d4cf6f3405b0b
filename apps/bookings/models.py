"""Booking persistence models for RentZone."""

from __future__ import annotations

import secrets
import time
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import IntegrityError, models, transaction  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
BOOKING_CODE_ATTEMPTS = 5


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


class Booking(models.Model):
    """Booking request for a property and its lifecycle record.

    Status changes go through ``apps.bookings.repositories.DjangoBookingStore``
    which writes them conditionally; do not assign ``status`` and ``save()``.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        ACTIVE = "active", _("Active")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")
        REJECTED = "rejected", _("Rejected")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")
        REFUNDED = "refunded", _("Refunded")

    class DurationType(models.TextChoices):
        DAYS = "days", _("Days")
        WEEKS = "weeks", _("Weeks")
        MONTHS = "months", _("Months")

    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_bookings",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=32, unique=True, editable=False)
    check_in = models.DateField()
    check_out = models.DateField()
    duration = models.PositiveSmallIntegerField(default=1)
    duration_type = models.CharField(
        max_length=10,
        choices=DurationType.choices,
        default=DurationType.MONTHS,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )

    monthly_rent = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    rent_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    security_deposit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Fixed when the request is created."),
    )
    currency = models.CharField(max_length=3, default="LKR")

    special_requests = models.TextField(blank=True)
    renter_phone = models.CharField(max_length=20, blank=True)

    status_history = models.JSONField(default=list, blank=True)
    rejection_reason = models.CharField(max_length=255, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    completion_notes = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "status", "check_in"], name="booking_property_status_idx"),
            models.Index(fields=["renter", "status"], name="booking_renter_status_idx"),
            models.Index(fields=["owner", "status"], name="booking_owner_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_code} for property {self.property_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if not (self._state.adding and not self.booking_code):
            super().save(*args, **kwargs)
            return

        for attempt in range(1, BOOKING_CODE_ATTEMPTS + 1):
            self.booking_code = self.generate_booking_code()
            try:
                with transaction.atomic():
                    super().save(*args, **kwargs)
                return
            except IntegrityError:
                taken = Booking.objects.filter(booking_code=self.booking_code).exists()
                if not taken or attempt == BOOKING_CODE_ATTEMPTS:
                    raise

    @staticmethod
    def generate_booking_code() -> str:
        stamp = _to_base36(int(time.time() * 1000))
        return f"BK-{stamp}-{secrets.randbelow(1_000_000):06d}"
