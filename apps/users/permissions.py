"""Role-based permission classes shared by the API."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


def is_admin_user(user) -> bool:
    """Platform staff or users holding the admin role."""
    if not user or not user.is_authenticated:
        return False
    return bool(
        getattr(user, "is_staff", False)
        or getattr(user, "is_superuser", False)
        or (hasattr(user, "is_admin") and user.is_admin())
    )


class IsRenter(permissions.BasePermission):
    """Only renters may submit booking requests."""

    message = "Only renters can submit booking requests"

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        return bool(user and user.is_authenticated and hasattr(user, "is_renter") and user.is_renter())


class IsOwnerOrAdmin(permissions.BasePermission):
    """Owners manage requests for their properties; admins may act on any."""

    message = "Only owners and admins can manage bookings"

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if is_admin_user(user):
            return True
        return hasattr(user, "is_owner") and user.is_owner()
