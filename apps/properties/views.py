"""Property API views."""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.domain.availability import AvailabilityResolver
from apps.bookings.domain.entities import BLOCKING_STATUSES
from apps.bookings.domain.exceptions import PropertyHasOpenBookings
from apps.bookings.mixins import BookingErrorMixin
from apps.bookings.repositories import DjangoBookingStore
from apps.users.permissions import is_admin_user

from .filters import PropertyFilterSet
from .models import Property
from .serializers import (
    AvailabilityQuerySerializer,
    CalendarDaySerializer,
    CalendarQuerySerializer,
    PropertySerializer,
    PropertyWriteSerializer,
)

logger = logging.getLogger(__name__)

OPEN_BOOKING_STATUSES = [status_.value for status_ in BLOCKING_STATUSES]


class IsPropertyOwnerOrAdmin(permissions.BasePermission):
    """Owners create and edit their own listings; admins manage every listing."""

    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        if is_admin_user(user):
            return True
        return hasattr(user, "is_owner") and user.is_owner()

    def has_object_permission(self, request, view, obj: Property):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if is_admin_user(user):
            return True
        return obj.owner_id == user.id


class PropertyViewSet(BookingErrorMixin, viewsets.ModelViewSet):
    """Viewset for property listings, their calendar and availability checks."""

    queryset = Property.objects.select_related("owner")
    permission_classes = [IsPropertyOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = PropertyFilterSet
    ordering_fields = ["monthly_rent", "created_at"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        public = Q(status=Property.Status.APPROVED, is_active=True)
        if not user.is_authenticated:
            return qs.filter(public)
        if is_admin_user(user):
            return qs
        return qs.filter(public | Q(owner=user))

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "partial_update"}:
            return PropertyWriteSerializer
        return PropertySerializer

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        logger.info(f"Property {instance.pk} listed by owner {request.user.pk}")
        return Response(PropertySerializer(instance).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        return Response(PropertySerializer(instance).data)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        """Soft delete: the listing is deactivated, its booking history is kept."""
        instance = self.get_object()
        open_bookings = instance.bookings.filter(status__in=OPEN_BOOKING_STATUSES).count()
        if open_bookings:
            raise PropertyHasOpenBookings(instance.pk, open_bookings)

        instance.is_active = False
        instance.is_available = False
        instance.save(update_fields=["is_active", "is_available", "updated_at"])
        logger.info(f"Property {instance.pk} deleted by user {request.user.pk}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _resolver(self) -> AvailabilityResolver:
        return AvailabilityResolver(DjangoBookingStore(), today=timezone.localdate)

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def calendar(self, request, pk=None):  # type: ignore
        """Day-by-day availability with the daily price, ``start`` and ``end`` inclusive."""
        property_obj = self.get_object()
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        start, end = query.validated_data["start"], query.validated_data["end"]

        calendar = self._resolver().build_availability_calendar(property_obj.pk, start, end)
        show_bookings = request.user.is_authenticated and (
            property_obj.owner_id == request.user.id or is_admin_user(request.user)
        )
        price = property_obj.daily_price
        days = [
            {
                "date": day.day,
                "available": day.available,
                "price": price,
                "booking_id": day.booking_id if show_bookings else None,
            }
            for day in calendar
        ]
        return Response(
            {
                "property_id": property_obj.pk,
                "start": start,
                "end": end,
                "currency": property_obj.currency,
                "days": CalendarDaySerializer(days, many=True).data,
            }
        )

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def availability(self, request, pk=None):  # type: ignore
        """Whether ``[check_in, check_out)`` is free of pending, confirmed and active bookings."""
        property_obj = self.get_object()
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        check_in = query.validated_data["check_in"]
        check_out = query.validated_data["check_out"]

        available = self._resolver().is_range_available(property_obj.pk, check_in, check_out)
        return Response(
            {
                "property_id": property_obj.pk,
                "check_in": check_in,
                "check_out": check_out,
                "available": available,
                "bookable": property_obj.is_bookable,
            }
        )
