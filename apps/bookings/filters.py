"""FilterSet definitions for booking lists."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking

# "active" on the renter side means the stay is agreed or under way
STATUS_ALIASES = {
    "active": [Booking.Status.CONFIRMED, Booking.Status.ACTIVE],
}

SORT_FIELDS = {
    "checkin": ("check_in", "pk"),
    "checkout": ("check_out", "pk"),
    "amount": ("-total_amount", "-created_at"),
    "created": ("-created_at", "-pk"),
}


class BookingFilterSet(django_filters.FilterSet):
    """Shared filters for renter and owner booking lists."""

    status = django_filters.CharFilter(method="filter_status")
    property = django_filters.NumberFilter(field_name="property_id")
    created_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    created_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    sort_by = django_filters.ChoiceFilter(
        method="filter_sort_by",
        choices=[(key, key) for key in SORT_FIELDS],
    )

    class Meta:
        model = Booking
        fields = ["status", "property"]

    def filter_status(self, queryset, name, value):  # type: ignore
        statuses: list[str] = []
        for item in str(value).split(","):
            item = item.strip()
            if not item:
                continue
            statuses.extend(STATUS_ALIASES.get(item, [item]))
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)

    def filter_sort_by(self, queryset, name, value):  # type: ignore
        return queryset.order_by(*SORT_FIELDS.get(value, SORT_FIELDS["created"]))


class OwnerBookingFilterSet(BookingFilterSet):
    """Owner lists default to the bookings that still need attention."""

    DEFAULT_STATUSES = [Booking.Status.PENDING, Booking.Status.CONFIRMED, Booking.Status.ACTIVE]

    @property
    def qs(self):  # type: ignore
        queryset = super().qs
        if not self.data.get("status"):
            queryset = queryset.filter(status__in=self.DEFAULT_STATUSES)
        return queryset
