"""API views for the booking domain."""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db.models import Count, Sum  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import IsOwnerOrAdmin, IsRenter, is_admin_user

from .application.command_handlers import (
    ActivateBookingCommand,
    ActivateBookingHandler,
    CancelBookingCommand,
    CancelBookingHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
    CreateBookingRequestCommand,
    CreateBookingRequestHandler,
    PayBookingCommand,
    PayBookingHandler,
    RejectBookingCommand,
    RejectBookingHandler,
    build_handler,
)
from .domain.entities import DurationType
from .filters import BookingFilterSet, OwnerBookingFilterSet
from .mixins import BookingErrorMixin
from .models import Booking
from .serializers import (
    BookingActionSerializer,
    BookingPaymentSerializer,
    BookingRequestSerializer,
    BookingSerializer,
)

logger = logging.getLogger(__name__)

REVENUE_STATUSES = {
    Booking.Status.CONFIRMED.value,
    Booking.Status.ACTIVE.value,
    Booking.Status.COMPLETED.value,
}


class BookingViewSet(
    BookingErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Renter side: submit requests, follow them, pay and cancel them."""

    serializer_class = BookingSerializer
    queryset = Booking.objects.select_related("property", "renter")
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = BookingFilterSet
    lookup_value_regex = r"\d+"

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [permissions.IsAuthenticated(), IsRenter()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(renter=self.request.user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        command = CreateBookingRequestCommand(
            property_id=data["property_id"],
            renter_id=request.user.pk,
            move_in_date=data["move_in_date"],
            duration=data["duration"],
            duration_type=DurationType(data["duration_type"]),
            special_requests=data["special_requests"],
            renter_phone=data["renter_phone"] or (request.user.phone or ""),
        )
        booking = build_handler(CreateBookingRequestHandler).handle(command)

        instance = self.get_queryset().get(pk=booking.id)
        return Response(BookingSerializer(instance).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        payload = BookingActionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        command = CancelBookingCommand(
            booking_id=booking.pk,
            actor_id=request.user.pk,
            reason=payload.validated_data["reason"],
        )
        build_handler(CancelBookingHandler).handle(command)

        booking.refresh_from_db()
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def pay(self, request, pk=None):  # type: ignore
        """Settle the booking total; the booking must be confirmed or active."""
        booking = self.get_object()
        payload = BookingPaymentSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        command = PayBookingCommand(
            booking_id=booking.pk,
            actor_id=request.user.pk,
            payment_method=payload.validated_data["payment_method"],
        )
        build_handler(PayBookingHandler).handle(command)

        booking.refresh_from_db()
        return Response(BookingSerializer(booking).data)


class OwnerBookingViewSet(
    BookingErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Owner side: review incoming requests and move them through their lifecycle."""

    serializer_class = BookingSerializer
    queryset = Booking.objects.select_related("property", "renter")
    permission_classes = [IsOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_class = OwnerBookingFilterSet
    lookup_value_regex = r"\d+"

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if is_admin_user(self.request.user):
            return qs
        return qs.filter(owner=self.request.user)

    def list(self, request, *args, **kwargs):  # type: ignore
        response = super().list(request, *args, **kwargs)
        base = self.get_queryset()
        response.data["stats"] = self._stats(base)
        response.data["pending_count"] = base.filter(status=Booking.Status.PENDING).count()
        response.data["unread_notifications"] = self._unread_booking_notifications(request.user)
        return response

    @staticmethod
    def _stats(queryset) -> dict:
        stats = {}
        rows = queryset.order_by().values("status").annotate(count=Count("id"), total=Sum("total_amount"))
        for row in rows:
            revenue = row["total"] if row["status"] in REVENUE_STATUSES else Decimal("0.00")
            stats[row["status"]] = {"count": row["count"], "revenue": revenue or Decimal("0.00")}
        return stats

    @staticmethod
    def _unread_booking_notifications(user) -> int:
        from apps.notifications.models import Notification

        return Notification.objects.filter(
            user=user,
            category=Notification.Category.BOOKING,
            is_read=False,
        ).count()

    def _payload(self, request) -> dict:
        serializer = BookingActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _respond(self, booking_id, **extra) -> Response:
        instance = Booking.objects.select_related("property", "renter").get(pk=booking_id)
        data = BookingSerializer(instance).data
        data.update(extra)
        return Response(data)

    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        self._payload(request)
        result = build_handler(ConfirmBookingHandler).handle(
            ConfirmBookingCommand(
                booking_id=booking.pk,
                actor_id=request.user.pk,
                as_admin=is_admin_user(request.user),
            )
        )
        return self._respond(
            booking.pk,
            auto_rejected=[item.id for item in result.rejected],
            cascade_failed=list(result.failed_ids),
        )

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        payload = self._payload(request)
        build_handler(RejectBookingHandler).handle(
            RejectBookingCommand(
                booking_id=booking.pk,
                actor_id=request.user.pk,
                reason=payload["reason"],
                as_admin=is_admin_user(request.user),
            )
        )
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        payload = self._payload(request)
        build_handler(CancelBookingHandler).handle(
            CancelBookingCommand(
                booking_id=booking.pk,
                actor_id=request.user.pk,
                reason=payload["reason"],
                as_admin=is_admin_user(request.user),
            )
        )
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        self._payload(request)
        build_handler(ActivateBookingHandler).handle(
            ActivateBookingCommand(
                booking_id=booking.pk,
                actor_id=request.user.pk,
                as_admin=is_admin_user(request.user),
            )
        )
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        payload = self._payload(request)
        build_handler(CompleteBookingHandler).handle(
            CompleteBookingCommand(
                booking_id=booking.pk,
                actor_id=request.user.pk,
                notes=payload["notes"],
                as_admin=is_admin_user(request.user),
            )
        )
        return self._respond(booking.pk)
