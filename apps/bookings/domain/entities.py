"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Aggregate representing a reservation request/agreement
- BookingStatus: FSM states for the booking lifecycle
- StatusChange: One append-only entry of a booking's status history
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List

from shared.domain.base import Aggregate, ValueObject, utcnow
from shared.domain.value_objects import DateRange, Money

from apps.bookings.domain.exceptions import InvalidTransition

AUTO_REJECT_REASON = "dates no longer available"


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions (forward only):
    - PENDING -> CONFIRMED (owner accepted)
    - PENDING -> REJECTED (owner declined, or auto-rejected by the cascade)
    - PENDING -> CANCELLED (renter or owner withdrew)
    - CONFIRMED -> ACTIVE (stay started)
    - CONFIRMED -> CANCELLED
    - CONFIRMED -> COMPLETED
    - ACTIVE -> COMPLETED
    COMPLETED, CANCELLED and REJECTED are terminal.
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    REJECTED = 'rejected'


TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.ACTIVE, BookingStatus.CANCELLED, BookingStatus.COMPLETED,
    }),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}

# Statuses that make a new request for the same dates unavailable
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE)

# Statuses that actually hold the dates; these must never overlap
HOLDING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.ACTIVE)


class DurationType(Enum):
    DAYS = 'days'
    WEEKS = 'weeks'
    MONTHS = 'months'


class PaymentStatus(Enum):
    """
    Payment state of a booking

    - PENDING -> PAID (renter paid a confirmed or active booking)
    - PAID -> REFUNDED (booking cancelled after payment)
    """
    PENDING = 'pending'
    PAID = 'paid'
    REFUNDED = 'refunded'


PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

# Bookings the renter can pay for
PAYABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.ACTIVE)


@dataclass(frozen=True)
class StatusChange(ValueObject):
    """One status history entry; never mutated once appended"""
    from_status: BookingStatus
    to_status: BookingStatus
    actor: Any = None
    reason: str = ''
    notes: str = ''
    at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            'from': self.from_status.value,
            'to': self.to_status.value,
            'by': str(self.actor) if self.actor is not None else None,
            'reason': self.reason,
            'notes': self.notes,
            'at': self.at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StatusChange':
        return cls(
            from_status=BookingStatus(data['from']),
            to_status=BookingStatus(data['to']),
            actor=data.get('by'),
            reason=data.get('reason') or '',
            notes=data.get('notes') or '',
            at=datetime.fromisoformat(data['at']),
        )


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Key invariants:
    - dates.start_date < dates.end_date (enforced by DateRange)
    - status only moves forward along TRANSITIONS
    - status_history is append-only
    - total_amount is fixed at creation
    """

    property_id: Any
    renter_id: Any
    owner_id: Any
    dates: DateRange
    total_amount: Money

    booking_code: str = ''
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING

    # Request terms and price breakdown
    duration: int = 1
    duration_type: DurationType = DurationType.MONTHS
    monthly_rent: Money | None = None
    rent_amount: Money | None = None
    security_deposit: Money | None = None
    special_requests: str = ''
    renter_phone: str = ''

    status_history: List[StatusChange] = field(default_factory=list)

    rejection_reason: str = ''
    cancellation_reason: str = ''
    completion_notes: str = ''

    confirmed_at: datetime | None = None
    activated_at: datetime | None = None
    rejected_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None

    # ----- state machine -----

    def can_transition_to(self, new_status: BookingStatus) -> bool:
        return new_status in TRANSITIONS[self.status]

    def ensure_can_transition_to(self, new_status: BookingStatus):
        if not self.can_transition_to(new_status):
            raise InvalidTransition(self.status.value, new_status.value, self.id)

    def transition(self, new_status: BookingStatus, actor: Any = None,
                   reason: str = '', notes: str = '') -> StatusChange:
        """
        Move to new_status and append the history entry

        Returns the entry so the caller can persist it with a conditional
        write keyed on entry.from_status.
        """
        self.ensure_can_transition_to(new_status)
        entry = StatusChange(
            from_status=self.status,
            to_status=new_status,
            actor=actor,
            reason=reason or '',
            notes=notes or '',
        )
        self.apply(entry)
        return entry

    def apply(self, entry: StatusChange):
        """Apply an already validated history entry"""
        self.status = entry.to_status
        self.status_history.append(entry)
        self.updated_at = entry.at

        if entry.to_status == BookingStatus.CONFIRMED:
            self.confirmed_at = entry.at
        elif entry.to_status == BookingStatus.ACTIVE:
            self.activated_at = entry.at
        elif entry.to_status == BookingStatus.REJECTED:
            self.rejected_at = entry.at
            self.rejection_reason = entry.reason
        elif entry.to_status == BookingStatus.CANCELLED:
            self.cancelled_at = entry.at
            self.cancellation_reason = entry.reason
        elif entry.to_status == BookingStatus.COMPLETED:
            self.completed_at = entry.at
            self.completion_notes = entry.notes

    # ----- lifecycle operations -----

    def record_request(self):
        """Raise BookingRequested once the booking has been stored"""
        from apps.bookings.domain.events import BookingRequested

        self.add_event(BookingRequested(
            aggregate_id=self.id,
            actor_id=self.renter_id,
            dates=self.dates,
            total_amount=self.total_amount,
            **self._event_refs(),
        ))

    def confirm(self, actor: Any) -> StatusChange:
        from apps.bookings.domain.events import BookingConfirmed

        entry = self.transition(BookingStatus.CONFIRMED, actor)
        self.add_event(BookingConfirmed(
            aggregate_id=self.id, actor_id=actor, dates=self.dates, **self._event_refs()
        ))
        return entry

    def reject(self, actor: Any, reason: str = '') -> StatusChange:
        from apps.bookings.domain.events import BookingRejected

        entry = self.transition(BookingStatus.REJECTED, actor, reason=reason)
        self.add_event(BookingRejected(
            aggregate_id=self.id, actor_id=actor, reason=entry.reason, **self._event_refs()
        ))
        return entry

    def apply_auto_rejection(self, entry: StatusChange, confirmed_booking_id: Any):
        """Record a rejection the cascade already wrote to storage"""
        from apps.bookings.domain.events import BookingAutoRejected

        self.apply(entry)
        self.add_event(BookingAutoRejected(
            aggregate_id=self.id,
            actor_id=entry.actor,
            reason=entry.reason,
            confirmed_booking_id=confirmed_booking_id,
            **self._event_refs(),
        ))

    def cancel(self, actor: Any, reason: str = '') -> StatusChange:
        from apps.bookings.domain.events import BookingCancelled

        old_status = self.status
        entry = self.transition(BookingStatus.CANCELLED, actor, reason=reason)
        refunded = self.payment_status == PaymentStatus.PAID
        if refunded:
            self.change_payment_status(PaymentStatus.REFUNDED)
        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            actor_id=actor,
            reason=entry.reason,
            old_status=old_status.value,
            refunded=refunded,
            **self._event_refs(),
        ))
        return entry

    def activate(self, actor: Any = None) -> StatusChange:
        from apps.bookings.domain.events import BookingActivated

        entry = self.transition(BookingStatus.ACTIVE, actor)
        self.add_event(BookingActivated(aggregate_id=self.id, actor_id=actor, **self._event_refs()))
        return entry

    def complete(self, actor: Any = None, notes: str = '') -> StatusChange:
        from apps.bookings.domain.events import BookingCompleted

        entry = self.transition(BookingStatus.COMPLETED, actor, notes=notes)
        self.add_event(BookingCompleted(
            aggregate_id=self.id, actor_id=actor, notes=entry.notes, **self._event_refs()
        ))
        return entry

    # ----- payment -----

    def change_payment_status(self, new_status: PaymentStatus) -> PaymentStatus:
        """Move the payment status forward and return the previous one"""
        if new_status not in PAYMENT_TRANSITIONS[self.payment_status]:
            raise InvalidTransition(self.payment_status.value, new_status.value, self.id)
        previous = self.payment_status
        now = utcnow()
        self.payment_status = new_status
        self.updated_at = now
        if new_status == PaymentStatus.PAID:
            self.paid_at = now
        elif new_status == PaymentStatus.REFUNDED:
            self.refunded_at = now
        return previous

    def mark_paid(self, actor: Any = None) -> PaymentStatus:
        """Record full payment of total_amount; only confirmed or active bookings"""
        from apps.bookings.domain.events import BookingPaid

        if self.status not in PAYABLE_STATUSES:
            raise InvalidTransition(self.status.value, PaymentStatus.PAID.value, self.id)
        previous = self.change_payment_status(PaymentStatus.PAID)
        self.add_event(BookingPaid(
            aggregate_id=self.id, actor_id=actor, amount=self.total_amount, **self._event_refs()
        ))
        return previous

    # ----- queries -----

    def overlaps(self, dates: DateRange) -> bool:
        return self.dates.overlaps_with(dates)

    @property
    def holds_dates(self) -> bool:
        return self.status in HOLDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]

    @property
    def nights(self) -> int:
        return len(self.dates)

    def _event_refs(self) -> dict:
        return {
            'booking_id': self.id,
            'property_id': self.property_id,
            'renter_id': self.renter_id,
            'owner_id': self.owner_id,
        }

    def __str__(self):
        return f"Booking {self.booking_code or self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, property_id={self.property_id}, "
            f"status={self.status.value}, dates={self.dates!r})"
        )
