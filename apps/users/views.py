"""User API views."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore
from rest_framework.generics import RetrieveUpdateAPIView  # type: ignore

from .serializers import UserSerializer


class MeView(RetrieveUpdateAPIView):
    """Profile of the authenticated user; email and role are read-only."""

    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "patch", "head", "options"]

    def get_object(self):  # type: ignore
        return self.request.user
