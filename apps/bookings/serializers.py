"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.users.serializers import UserShortSerializer
from shared.api.serializers import StrictFieldsMixin

from .domain.entities import DurationType
from .models import Booking

MAX_DURATION = 365
PAYMENT_METHODS = ["card", "bank_transfer", "cash"]


class BookingPropertySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    title = serializers.CharField()
    city = serializers.CharField()
    address = serializers.CharField()


class StatusChangeSerializer(serializers.Serializer):
    from_status = serializers.CharField(source="from")
    to_status = serializers.CharField(source="to")
    by = serializers.CharField(allow_null=True)
    reason = serializers.CharField(allow_blank=True)
    notes = serializers.CharField(allow_blank=True, required=False)
    at = serializers.DateTimeField()


class BookingSerializer(serializers.ModelSerializer):
    """Read serializer for bookings shown to renters and owners."""

    property = BookingPropertySerializer(read_only=True)
    renter = UserShortSerializer(read_only=True)
    owner_id = serializers.ReadOnlyField()
    status_history = StatusChangeSerializer(many=True, read_only=True)
    nights = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "property",
            "renter",
            "owner_id",
            "check_in",
            "check_out",
            "nights",
            "duration",
            "duration_type",
            "status",
            "payment_status",
            "monthly_rent",
            "rent_amount",
            "security_deposit",
            "total_amount",
            "currency",
            "special_requests",
            "renter_phone",
            "status_history",
            "rejection_reason",
            "cancellation_reason",
            "completion_notes",
            "confirmed_at",
            "activated_at",
            "rejected_at",
            "cancelled_at",
            "completed_at",
            "paid_at",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_nights(self, obj: Booking) -> int:
        return (obj.check_out - obj.check_in).days


class BookingRequestSerializer(StrictFieldsMixin, serializers.Serializer):
    """Renter's booking request: move-in date plus a duration."""

    property_id = serializers.IntegerField()
    move_in_date = serializers.DateField()
    duration = serializers.IntegerField(min_value=1, max_value=MAX_DURATION)
    duration_type = serializers.ChoiceField(
        choices=[item.value for item in DurationType],
        default=DurationType.MONTHS.value,
    )
    special_requests = serializers.CharField(required=False, allow_blank=True, max_length=2000, default="")
    renter_phone = serializers.CharField(required=False, allow_blank=True, max_length=20, default="")


class BookingActionSerializer(StrictFieldsMixin, serializers.Serializer):
    """Optional explanation attached to a status change."""

    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000, default="")


class BookingPaymentSerializer(StrictFieldsMixin, serializers.Serializer):
    """Renter pays the whole booking total."""

    payment_method = serializers.ChoiceField(choices=PAYMENT_METHODS, default="card")
