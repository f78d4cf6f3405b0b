"""View mixins translating booking domain errors into API responses."""

from __future__ import annotations

import logging

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.domain.exceptions import (
    BookingError,
    BookingNotFound,
    DateConflict,
    PropertyUnavailable,
)

logger = logging.getLogger(__name__)


def status_for(exc: BookingError) -> int:
    if isinstance(exc, DateConflict):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (BookingNotFound, PropertyUnavailable)):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST


class BookingErrorMixin:
    """Render BookingError subclasses as ``{"error", "code", ...}`` envelopes."""

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, BookingError):
            http_status = status_for(exc)
            logger.info(f"{exc.__class__.__name__} on {self.__class__.__name__}: {exc.message}")
            return Response(exc.to_dict(), status=http_status)
        return super().handle_exception(exc)  # type: ignore
