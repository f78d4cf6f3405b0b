"""Domain event subscriptions for the booking lifecycle.

Handlers run after the transaction that raised the event commits and hand
the notification work to Celery.
"""

from __future__ import annotations

import logging

from shared.application.message_bus import message_bus

from .domain.events import (
    BookingActivated,
    BookingAutoRejected,
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingEvent,
    BookingPaid,
    BookingRejected,
    BookingRequested,
)

logger = logging.getLogger(__name__)

# Exact event class -> notification kind; subclasses are matched first
EVENT_TYPES = {
    BookingRequested: "requested",
    BookingConfirmed: "confirmed",
    BookingAutoRejected: "auto_rejected",
    BookingRejected: "rejected",
    BookingCancelled: "cancelled",
    BookingActivated: "activated",
    BookingCompleted: "completed",
    BookingPaid: "paid",
}


def event_type_for(event: BookingEvent) -> str | None:
    return EVENT_TYPES.get(type(event))


@message_bus.subscribe(BookingEvent)
def enqueue_booking_notification(event: BookingEvent) -> None:
    from .tasks import notify_booking_event

    kind = event_type_for(event)
    if kind is None:
        logger.warning(f"No notification kind for {type(event).__name__}")
        return

    extra = {
        "actor_id": event.actor_id,
        "reason": getattr(event, "reason", ""),
        "refunded": getattr(event, "refunded", False),
    }
    notify_booking_event.delay(event.booking_id, kind, extra)
    logger.debug(f"Queued {kind} notification for booking {event.booking_id}")
