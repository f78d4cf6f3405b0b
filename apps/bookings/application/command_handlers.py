"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingRequestCommand: Renter asks to book a property
- ConfirmBookingCommand: Owner accepts a pending request (runs the cascade)
- RejectBookingCommand: Owner declines a pending request
- CancelBookingCommand: Renter or owner withdraws a booking
- ActivateBookingCommand: The stay has started
- CompleteBookingCommand: The stay is over
- PayBookingCommand: Renter pays a confirmed booking; cancelling it later refunds
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional
import logging

from django.conf import settings
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange
from apps.bookings.domain.availability import AvailabilityResolver, ConfirmationResult
from apps.bookings.domain.entities import (
    BLOCKING_STATUSES,
    HOLDING_STATUSES,
    Booking,
    BookingStatus,
    DurationType,
    PaymentStatus,
    StatusChange,
)
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    DateConflict,
    InvalidTransition,
    PropertyUnavailable,
)
from apps.bookings.domain.pricing import compute_check_out, quote
from apps.bookings.domain.store import BookingStore

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingRequestCommand:
    """
    Command to request a booking

    The stay runs from move_in_date for `duration` units of duration_type.
    """
    property_id: Any
    renter_id: Any
    move_in_date: date
    duration: int
    duration_type: DurationType = DurationType.MONTHS
    special_requests: str = ''
    renter_phone: str = ''


@dataclass
class ConfirmBookingCommand:
    """Command to accept a pending request"""
    booking_id: Any
    actor_id: Any
    as_admin: bool = False


@dataclass
class RejectBookingCommand:
    booking_id: Any
    actor_id: Any
    reason: str = ''
    as_admin: bool = False


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking (renter or owner)"""
    booking_id: Any
    actor_id: Any
    reason: str = ''
    as_admin: bool = False


@dataclass
class ActivateBookingCommand:
    booking_id: Any
    actor_id: Any = None
    as_admin: bool = False


@dataclass
class CompleteBookingCommand:
    booking_id: Any
    actor_id: Any = None
    notes: str = ''
    as_admin: bool = False


@dataclass
class PayBookingCommand:
    """Command for the renter to pay the booking's total_amount"""
    booking_id: Any
    actor_id: Any
    payment_method: str = 'card'
    as_admin: bool = False


# ===== Command Handlers =====

class BookingHandler:
    """
    Shared plumbing for booking handlers

    The store is injected; `today` defaults to the project timezone's
    current date so PastDate checks follow settings.TIME_ZONE.
    """

    def __init__(self, store: BookingStore, today: Callable[[], date] = timezone.localdate):
        self.store = store
        self.resolver = AvailabilityResolver(store, today=today)

    def load_for_actor(self, booking_id: Any, actor_id: Any, *, as_admin: bool = False,
                       renter_allowed: bool = False) -> Booking:
        """
        Load a booking the actor is a party to

        Bookings of other users are reported as missing, not forbidden.
        """
        booking = self.store.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        if as_admin or actor_id is None:
            return booking

        parties = {str(booking.owner_id)}
        if renter_allowed:
            parties.add(str(booking.renter_id))
        if str(actor_id) not in parties:
            raise BookingNotFound(booking_id)
        return booking

    def persist_transition(self, booking: Booking, entry: StatusChange):
        """Conditional write of an entry produced by booking.transition()"""
        if not self.store.conditional_update_status(booking.id, entry.from_status, entry.to_status, entry):
            current = self.store.get(booking.id)
            current_status = current.status.value if current else 'missing'
            raise InvalidTransition(current_status, entry.to_status.value, booking.id)

    def load_for_renter(self, booking_id: Any, actor_id: Any, *, as_admin: bool = False) -> Booking:
        booking = self.store.get(booking_id)
        if booking is None or not (as_admin or str(booking.renter_id) == str(actor_id)):
            raise BookingNotFound(booking_id)
        return booking

    def persist_payment(self, booking: Booking, expected: PaymentStatus):
        """Conditional write of a payment status change made on the entity"""
        new = booking.payment_status
        at = booking.paid_at if new == PaymentStatus.PAID else booking.refunded_at
        if not self.store.conditional_update_payment(booking.id, expected, new, at):
            current = self.store.get(booking.id)
            current_status = current.payment_status.value if current else 'missing'
            raise InvalidTransition(current_status, new.value, booking.id)


class CreateBookingRequestHandler(BookingHandler):
    """
    Handler for CreateBookingRequest command

    Steps:
    1. Property must be approved, active and switched on for booking
    2. Derive check-out from move-in and duration, price the stay
    3. Validate the range (not inverted, not in the past)
    4. Reject if confirmed/active bookings hold any of the dates
       (pending requests too, unless BOOKING_ALLOW_OVERLAPPING_REQUESTS)
    5. Store the pending booking; BookingRequested is published after commit
    """

    def handle(self, command: CreateBookingRequestCommand) -> Booking:
        logger.info(
            f"Booking request for property {command.property_id} by renter {command.renter_id}: "
            f"{command.duration} {command.duration_type.value} from {command.move_in_date}"
        )

        from apps.properties.models import Property as PropertyModel

        property_model = PropertyModel.objects.filter(pk=command.property_id).first()
        if property_model is None or not property_model.is_bookable:
            raise PropertyUnavailable(command.property_id)

        check_out = compute_check_out(command.move_in_date, command.duration, command.duration_type)
        dates = self.resolver.validate_range(command.move_in_date, check_out)
        price = quote(property_model.rental_terms(), command.duration, command.duration_type)

        statuses = (
            HOLDING_STATUSES
            if getattr(settings, 'BOOKING_ALLOW_OVERLAPPING_REQUESTS', True)
            else BLOCKING_STATUSES
        )

        with DjangoUnitOfWork() as uow:
            conflicts = self.resolver.find_conflicts(
                property_model.pk, dates.start_date, dates.end_date, statuses=statuses
            )
            if conflicts:
                raise DateConflict(conflicts)

            booking = Booking(
                property_id=property_model.pk,
                renter_id=command.renter_id,
                owner_id=property_model.owner_id,
                dates=DateRange(dates.start_date, dates.end_date),
                total_amount=price.total_amount,
                duration=command.duration,
                duration_type=command.duration_type,
                monthly_rent=price.monthly_rent,
                rent_amount=price.rent_amount,
                security_deposit=price.security_deposit,
                special_requests=command.special_requests or '',
                renter_phone=command.renter_phone or '',
            )
            self.store.add(booking)
            booking.record_request()
            uow.collect_events(booking)

        logger.info(f"Booking request {booking.booking_code} created (ID: {booking.id})")
        return booking


class ConfirmBookingHandler(BookingHandler):
    """
    Handler for accepting a request

    Confirmation and cascade share one transaction; the store isolates each
    cascaded write in a savepoint, so a failed rejection never undoes the
    confirmation.
    """

    def handle(self, command: ConfirmBookingCommand) -> ConfirmationResult:
        logger.info(f"Confirming booking {command.booking_id} by {command.actor_id}")

        with DjangoUnitOfWork() as uow:
            self.load_for_actor(command.booking_id, command.actor_id, as_admin=command.as_admin)
            result = self.resolver.confirm_booking(command.booking_id, command.actor_id)

            uow.collect_events(result.booking)
            for rejected in result.rejected:
                uow.collect_events(rejected)
            # Events: BookingConfirmed, BookingAutoRejected per cascaded request

        return result


class RejectBookingHandler(BookingHandler):

    def handle(self, command: RejectBookingCommand) -> Booking:
        logger.info(f"Rejecting booking {command.booking_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = self.load_for_actor(command.booking_id, command.actor_id, as_admin=command.as_admin)
            entry = booking.reject(command.actor_id, command.reason)
            self.persist_transition(booking, entry)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} rejected")
        return booking


class CancelBookingHandler(BookingHandler):
    """Cancellation is open to both the renter and the owner"""

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = self.load_for_actor(
                command.booking_id, command.actor_id, as_admin=command.as_admin, renter_allowed=True
            )
            paid_before = booking.payment_status
            entry = booking.cancel(command.actor_id, command.reason)
            self.persist_transition(booking, entry)
            if booking.payment_status != paid_before:
                self.persist_payment(booking, paid_before)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} cancelled (payment {booking.payment_status.value})")
        return booking


class PayBookingHandler(BookingHandler):
    """
    Handler for a renter paying a booking

    Only the renter of a confirmed or active booking can pay, and only once.
    The whole total_amount is settled; partial payments are not tracked.
    """

    def handle(self, command: PayBookingCommand) -> Booking:
        logger.info(
            f"Payment for booking {command.booking_id} by {command.actor_id} ({command.payment_method})"
        )

        with DjangoUnitOfWork() as uow:
            booking = self.load_for_renter(command.booking_id, command.actor_id, as_admin=command.as_admin)
            previous = booking.mark_paid(command.actor_id)
            self.persist_payment(booking, previous)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} paid: {booking.total_amount}")
        return booking


class ActivateBookingHandler(BookingHandler):

    def handle(self, command: ActivateBookingCommand) -> Booking:
        logger.info(f"Activating booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.load_for_actor(command.booking_id, command.actor_id, as_admin=command.as_admin)
            entry = booking.activate(command.actor_id)
            self.persist_transition(booking, entry)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} is active")
        return booking


class CompleteBookingHandler(BookingHandler):

    def handle(self, command: CompleteBookingCommand) -> Booking:
        logger.info(f"Completing booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.load_for_actor(command.booking_id, command.actor_id, as_admin=command.as_admin)
            entry = booking.complete(command.actor_id, command.notes)
            self.persist_transition(booking, entry)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} completed")
        return booking


def default_store() -> BookingStore:
    from apps.bookings.repositories import DjangoBookingStore

    return DjangoBookingStore()


def build_handler(handler_class, store: Optional[BookingStore] = None):
    """Instantiate a handler with the Django store unless one is given"""
    return handler_class(store if store is not None else default_store())
