"""FilterSet definitions for property listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Property


class PropertyFilterSet(django_filters.FilterSet):
    """FilterSet for Property with the filters used by the listing page."""

    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    rent_min = django_filters.NumberFilter(field_name="monthly_rent", lookup_expr="gte")
    rent_max = django_filters.NumberFilter(field_name="monthly_rent", lookup_expr="lte")
    available = django_filters.BooleanFilter(field_name="is_available")
    mine = django_filters.BooleanFilter(method="filter_mine")

    class Meta:
        model = Property
        fields = ["city", "status", "currency"]

    def filter_mine(self, queryset, name, value):  # type: ignore
        user = getattr(self.request, "user", None)
        if not value or user is None or not user.is_authenticated:
            return queryset
        return queryset.filter(owner=user)
