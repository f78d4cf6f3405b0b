"""Serializers for the properties domain."""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from shared.api.serializers import StrictFieldsMixin

from .models import Property


class PropertySerializer(serializers.ModelSerializer):
    """Read serializer."""

    owner_id = serializers.ReadOnlyField(source="owner.id")
    daily_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    is_bookable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Property
        fields = [
            "id",
            "owner_id",
            "title",
            "description",
            "city",
            "address",
            "status",
            "is_active",
            "is_available",
            "is_bookable",
            "monthly_rent",
            "daily_price",
            "currency",
            "security_deposit",
            "monthly_discount",
            "min_months_for_discount",
            "min_stay_days",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PropertyWriteSerializer(StrictFieldsMixin, serializers.ModelSerializer):
    """Serializer for create/update operations.

    Moderation status can only be changed by admins.
    """

    class Meta:
        model = Property
        fields = [
            "title",
            "description",
            "city",
            "address",
            "status",
            "is_active",
            "is_available",
            "monthly_rent",
            "currency",
            "security_deposit",
            "monthly_discount",
            "min_months_for_discount",
            "min_stay_days",
        ]
        extra_kwargs = {
            "status": {"required": False},
        }

    def validate_status(self, value: str) -> str:
        user = self.context["request"].user
        is_admin = getattr(user, "is_staff", False) or (hasattr(user, "is_admin") and user.is_admin())
        if not is_admin:
            raise serializers.ValidationError("Only admins can change moderation status.")
        return value

    def create(self, validated_data):  # type: ignore
        return Property.objects.create(owner=self.context["request"].user, **validated_data)


class CalendarQuerySerializer(serializers.Serializer):
    """``?start=&end=`` for the availability calendar, both inclusive."""

    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start") or timezone.localdate()
        default_days = settings.BOOKING_CALENDAR_DEFAULT_DAYS
        end = attrs.get("end") or start + timedelta(days=default_days - 1)
        # start > end is left to the resolver so it reports invalid_range
        if start <= end and (end - start).days + 1 > settings.BOOKING_CALENDAR_MAX_DAYS:
            raise serializers.ValidationError(
                {"end": f"Calendar window is limited to {settings.BOOKING_CALENDAR_MAX_DAYS} days."}
            )
        attrs["start"] = start
        attrs["end"] = end
        return attrs


class AvailabilityQuerySerializer(serializers.Serializer):
    check_in = serializers.DateField()
    check_out = serializers.DateField()


class CalendarDaySerializer(serializers.Serializer):
    date = serializers.DateField()
    available = serializers.BooleanField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    booking_id = serializers.IntegerField(allow_null=True, required=False)
