"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "property",
        "renter",
        "status",
        "payment_status",
        "check_in",
        "check_out",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "duration_type", "check_in")
    search_fields = ("booking_code", "property__title", "renter__email", "owner__email")
    # Status and payment move only through the booking handlers
    readonly_fields = (
        "booking_code",
        "status",
        "payment_status",
        "paid_at",
        "refunded_at",
        "status_history",
        "confirmed_at",
        "activated_at",
        "rejected_at",
        "cancelled_at",
        "completed_at",
        "created_at",
        "updated_at",
    )
