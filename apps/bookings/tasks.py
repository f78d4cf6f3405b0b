"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from .application.command_handlers import (
    ActivateBookingCommand,
    ActivateBookingHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
    build_handler,
)
from .domain.exceptions import BookingError
from .models import Booking

logger = logging.getLogger(__name__)

HIGH = "high"
MEDIUM = "medium"
LOW = "low"


def _renter_url(booking: Booking) -> str:
    return f"/renter/bookings/{booking.pk}"


def _owner_url(booking: Booking) -> str:
    return f"/owner/bookings/{booking.pk}"


def _with_reason(text: str, reason: str) -> str:
    return f"{text}: {reason}" if reason else text


def _messages_for(booking: Booking, event_type: str, extra: dict[str, Any]) -> list[dict[str, Any]]:
    """Recipients and texts for one booking event."""
    title = booking.property.title
    renter_name = booking.renter.full_name or booking.renter.email
    reason = extra.get("reason", "")

    if event_type == "requested":
        return [
            {
                "user": booking.owner,
                "type": "booking_request",
                "title": "New Booking Request!",
                "message": f'{renter_name} wants to book "{title}"',
                "priority": HIGH,
                "action_url": _owner_url(booking),
                "sender": booking.renter,
            },
            {
                "user": booking.renter,
                "type": "booking_submitted",
                "title": "Booking Request Sent!",
                "message": f'Your booking request for "{title}" has been sent to the owner',
                "priority": MEDIUM,
                "action_url": _renter_url(booking),
            },
        ]
    if event_type == "confirmed":
        return [
            {
                "user": booking.renter,
                "type": "booking_accepted",
                "title": "Booking Confirmed!",
                "message": f'Your booking request for "{title}" has been approved',
                "priority": HIGH,
                "action_url": _renter_url(booking),
                "sender": booking.owner,
            }
        ]
    if event_type == "rejected":
        return [
            {
                "user": booking.renter,
                "type": "booking_rejected",
                "title": "Booking Declined",
                "message": _with_reason(f'Your booking request for "{title}" was declined', reason),
                "priority": MEDIUM,
                "action_url": _renter_url(booking),
                "sender": booking.owner,
            }
        ]
    if event_type == "auto_rejected":
        return [
            {
                "user": booking.renter,
                "type": "booking_auto_rejected",
                "title": "Booking Unavailable",
                "message": f'The dates you requested for "{title}" are no longer available',
                "priority": MEDIUM,
                "action_url": _renter_url(booking),
            }
        ]
    if event_type == "cancelled":
        # The party that did not cancel hears about it
        if str(extra.get("actor_id")) == str(booking.renter_id):
            return [
                {
                    "user": booking.owner,
                    "type": "booking_cancelled",
                    "title": "Booking Cancelled",
                    "message": _with_reason(f'{renter_name} cancelled the booking for "{title}"', reason),
                    "priority": LOW,
                    "action_url": _owner_url(booking),
                    "sender": booking.renter,
                }
            ]
        message = _with_reason(f'Your booking for "{title}" has been cancelled', reason)
        if extra.get("refunded"):
            message += ". Your payment will be refunded"
        return [
            {
                "user": booking.renter,
                "type": "booking_cancelled",
                "title": "Booking Cancelled",
                "message": message,
                "priority": LOW,
                "action_url": _renter_url(booking),
            }
        ]
    if event_type == "paid":
        return [
            {
                "user": booking.owner,
                "type": "payment_completed",
                "title": "Booking Fully Paid",
                "message": f"Booking {booking.booking_code} has been fully paid by {renter_name}",
                "priority": HIGH,
                "action_url": _owner_url(booking),
                "sender": booking.renter,
            },
            {
                "user": booking.renter,
                "type": "booking_fully_paid",
                "title": "Booking Fully Paid",
                "message": f"Your booking {booking.booking_code} is now fully paid",
                "priority": MEDIUM,
                "action_url": _renter_url(booking),
            },
        ]
    if event_type == "activated":
        return [
            {
                "user": booking.renter,
                "type": "booking_active",
                "title": "Stay Started",
                "message": f'Your stay at "{title}" has started',
                "priority": LOW,
                "action_url": _renter_url(booking),
            }
        ]
    if event_type == "completed":
        return [
            {
                "user": booking.renter,
                "type": "booking_completed",
                "title": "Booking Completed",
                "message": f'Your stay at "{title}" has been completed',
                "priority": LOW,
                "action_url": _renter_url(booking),
            }
        ]
    return []


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@shared_task(name="bookings.notify_booking_event")
def notify_booking_event(booking_id: int, event_type: str, extra: dict[str, Any] | None = None) -> int:
    """
    Create notifications for a booking lifecycle event.

    Returns the number of notifications sent.
    """
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_user

    extra = extra or {}
    booking = (
        Booking.objects.select_related("property", "renter", "owner")
        .filter(pk=booking_id)
        .first()
    )
    if booking is None:
        logger.warning(f"Booking {booking_id} not found for {event_type} notification")
        return 0

    sent = 0
    for message in _messages_for(booking, event_type, extra):
        user = message.pop("user")
        try:
            notify_user(
                user,
                category=Notification.Category.BOOKING,
                data={
                    "booking_id": booking.pk,
                    "booking_code": booking.booking_code,
                    "property_id": booking.property_id,
                    "status": booking.status,
                },
                **message,
            )
            sent += 1
        except Exception as e:
            logger.error(
                f"Failed to notify user {user.pk} about booking {booking_id} ({event_type}): {e}",
                exc_info=True,
            )
    return sent


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.activate_started_bookings")
def activate_started_bookings() -> dict[str, int]:
    """
    Move confirmed bookings whose check-in day has come to active.

    Runs hourly through Celery Beat.
    """
    today = timezone.localdate()
    handler = build_handler(ActivateBookingHandler)
    activated = 0
    failed = 0

    ids = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        check_in__lte=today,
    ).values_list("pk", flat=True)

    for booking_id in ids:
        try:
            handler.handle(ActivateBookingCommand(booking_id=booking_id))
            activated += 1
        except BookingError as e:
            failed += 1
            logger.warning(f"Booking {booking_id} not activated: {e}")
        except Exception as e:
            failed += 1
            logger.error(f"Error activating booking {booking_id}: {e}", exc_info=True)

    if activated or failed:
        logger.info(f"Activated {activated} bookings, {failed} failed")
    return {"activated": activated, "failed": failed}


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Complete active bookings whose check-out day has passed.

    Runs hourly through Celery Beat.
    """
    today = timezone.localdate()
    handler = build_handler(CompleteBookingHandler)
    completed = 0
    failed = 0

    ids = Booking.objects.filter(
        status=Booking.Status.ACTIVE,
        check_out__lte=today,
    ).values_list("pk", flat=True)

    for booking_id in ids:
        try:
            handler.handle(CompleteBookingCommand(booking_id=booking_id))
            completed += 1
        except BookingError as e:
            failed += 1
            logger.warning(f"Booking {booking_id} not completed: {e}")
        except Exception as e:
            failed += 1
            logger.error(f"Error completing booking {booking_id}: {e}", exc_info=True)

    if completed or failed:
        logger.info(f"Completed {completed} bookings, {failed} failed")
    return {"completed": completed, "failed": failed}
