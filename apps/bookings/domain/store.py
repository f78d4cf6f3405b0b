"""
Booking Store port

The storage operations the availability resolver depends on. The Django
implementation lives in apps.bookings.repositories; tests use an in-memory
one. Implementations are injected, never looked up globally.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional, Protocol

from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus, StatusChange


class BookingStore(Protocol):

    def get(self, booking_id: Any) -> Optional[Booking]:
        ...

    def add(self, booking: Booking) -> Booking:
        """Persist a new booking and return it with id assigned"""
        ...

    def find_bookings_by_property(self, property_id: Any,
                                  status_in: Iterable[BookingStatus]) -> List[Booking]:
        ...

    def conditional_update_status(self, booking_id: Any, expected_status: BookingStatus,
                                  new_status: BookingStatus, entry: StatusChange) -> bool:
        """
        Atomically set status=new_status and append entry, only if the stored
        status is still expected_status. Returns whether the write matched.
        """
        ...

    def bulk_update_status(self, booking_ids: Iterable[Any], expected_status: BookingStatus,
                           new_status: BookingStatus, entry: StatusChange) -> List[Any]:
        """
        Apply the same conditional update to each id independently.
        Returns the ids that were actually moved.
        """
        ...

    def conditional_update_payment(self, booking_id: Any, expected: PaymentStatus,
                                   new: PaymentStatus, at: datetime) -> bool:
        """Set payment_status=new (stamping paid_at/refunded_at) only if it is still expected"""
        ...
