"""
Booking Domain Errors

All of these are deterministic, caller-correctable errors. They are never
retried; views turn them into 4xx responses using code and to_dict().
"""

from datetime import date
from typing import Any, Iterable, List


class BookingError(Exception):
    """Base class for booking domain errors"""
    code = 'booking_error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


class InvalidRange(BookingError):
    """check_in is not strictly before check_out"""
    code = 'invalid_range'

    def __init__(self, start: date, end: date):
        super().__init__(f"Check-in date ({start}) must be before check-out date ({end})")
        self.start = start
        self.end = end


class PastDate(BookingError):
    """Requested range begins before today"""
    code = 'past_date'

    def __init__(self, check_in: date, today: date):
        super().__init__(f"Check-in date ({check_in}) cannot be before today ({today})")
        self.check_in = check_in
        self.today = today


class InvalidTransition(BookingError):
    """Status precondition violated"""
    code = 'invalid_transition'

    def __init__(self, current: str, attempted: str, booking_id: Any = None):
        super().__init__(f"Cannot move booking from status '{current}' to '{attempted}'")
        self.current = current
        self.attempted = attempted
        self.booking_id = booking_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({'current_status': self.current, 'attempted_status': self.attempted})
        return data


class DateConflict(BookingError):
    """
    The range overlaps bookings that hold the dates

    Carries the conflicting bookings so the caller can explain which
    ranges are taken.
    """
    code = 'date_conflict'

    def __init__(self, conflicts: Iterable, message: str = "Property not available for selected dates"):
        super().__init__(message)
        self.conflicts: List = list(conflicts)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['conflicting_bookings'] = [
            {
                'id': booking.id,
                'check_in': booking.dates.start_date.isoformat(),
                'check_out': booking.dates.end_date.isoformat(),
                'status': booking.status.value,
            }
            for booking in self.conflicts
        ]
        return data


class BookingNotFound(BookingError):
    code = 'not_found'

    def __init__(self, booking_id: Any):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class PropertyUnavailable(BookingError):
    """Property missing, not approved, inactive or switched off for booking"""
    code = 'property_unavailable'

    def __init__(self, property_id: Any):
        super().__init__("Property not available for booking")
        self.property_id = property_id


class PropertyHasOpenBookings(BookingError):
    """Listing still has pending, confirmed or active bookings"""
    code = 'property_has_bookings'

    def __init__(self, property_id: Any, open_bookings: int):
        super().__init__(
            "Cannot delete property with active bookings; cancel or complete them first"
        )
        self.property_id = property_id
        self.open_bookings = open_bookings

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['active_bookings'] = self.open_bookings
        return data
