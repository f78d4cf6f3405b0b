"""URL routing for the booking domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import BookingViewSet, OwnerBookingViewSet

owner_router = SimpleRouter()
owner_router.register(r"", OwnerBookingViewSet, basename="owner-booking")

router = SimpleRouter()
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = [
    path("owner/", include(owner_router.urls)),
    path("", include(router.urls)),
]
