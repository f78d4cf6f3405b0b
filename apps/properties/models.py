"""Property listings."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import SUPPORTED_CURRENCIES, Money


class Property(models.Model):
    """A property listed for monthly (or shorter) rental."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending review")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="properties",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    city = models.CharField(max_length=120)
    address = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    is_active = models.BooleanField(default=True)
    is_available = models.BooleanField(
        default=True,
        help_text=_("Owner switch; unavailable properties accept no new requests."),
    )

    monthly_rent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(
        max_length=3,
        choices=[(code, code) for code in SUPPORTED_CURRENCIES],
        default="LKR",
    )
    security_deposit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    monthly_discount = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("100.00"))],
        help_text=_("Percent off the rent for month-based stays."),
    )
    min_months_for_discount = models.PositiveSmallIntegerField(default=0)
    min_stay_days = models.PositiveSmallIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "is_active", "is_available"], name="property_bookable_idx"),
            models.Index(fields=["city"], name="property_city_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.city})"

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.APPROVED and self.is_active and self.is_available

    @property
    def daily_price(self) -> Decimal:
        """Daily equivalent of the monthly rent, shown on the calendar."""
        return (self.monthly_rent / Decimal("30")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def rental_terms(self):
        from apps.bookings.domain.pricing import RentalTerms

        return RentalTerms(
            monthly_rent=Money(self.monthly_rent, self.currency),
            security_deposit=Money(self.security_deposit, self.currency),
            monthly_discount=self.monthly_discount,
            min_months_for_discount=self.min_months_for_discount,
        )
