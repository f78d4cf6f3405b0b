"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from typing import Any

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange, Money


@dataclass(kw_only=True)
class BookingEvent(DomainEvent):
    """Common payload of every booking lifecycle event"""
    booking_id: Any
    property_id: Any
    renter_id: Any
    owner_id: Any
    actor_id: Any = None


@dataclass(kw_only=True)
class BookingRequested(BookingEvent):
    """
    Event: A renter submitted a booking request (created in pending)

    Triggers:
    - Notify the owner about the new request
    - Confirm submission to the renter
    """
    dates: DateRange
    total_amount: Money


@dataclass(kw_only=True)
class BookingConfirmed(BookingEvent):
    """
    Event: Owner accepted the request (pending -> confirmed)

    Triggers:
    - Notify the renter
    """
    dates: DateRange


@dataclass(kw_only=True)
class BookingRejected(BookingEvent):
    """Event: Owner declined the request (pending -> rejected)"""
    reason: str = ''


@dataclass(kw_only=True)
class BookingAutoRejected(BookingRejected):
    """
    Event: Request rejected by the cascade after another booking for
    overlapping dates was confirmed

    One event per rejected booking, so each renter is notified on its own.
    """
    confirmed_booking_id: Any = None


@dataclass(kw_only=True)
class BookingCancelled(BookingEvent):
    """Event: Booking cancelled by the renter or the owner

    refunded is set when the cancellation also refunded a paid booking.
    """
    reason: str = ''
    old_status: str = ''
    refunded: bool = False


@dataclass(kw_only=True)
class BookingPaid(BookingEvent):
    """
    Event: Renter paid the booking in full (payment pending -> paid)

    Triggers:
    - Notify the owner and the renter
    """
    amount: Money


@dataclass(kw_only=True)
class BookingActivated(BookingEvent):
    """Event: Stay started (confirmed -> active)"""


@dataclass(kw_only=True)
class BookingCompleted(BookingEvent):
    """Event: Stay finished (confirmed/active -> completed)"""
    notes: str = ''
