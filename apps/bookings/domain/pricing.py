"""
Booking request pricing

Turns a move-in date plus a duration into the booked range and a price
quote. The quote is computed once when the request is created; later status
changes never recompute it.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from shared.domain.value_objects import Money

from apps.bookings.domain.entities import DurationType

DAYS_PER_MONTH = Decimal('30')
WEEKS_PER_MONTH = Decimal('4')


@dataclass(frozen=True)
class RentalTerms:
    """Pricing terms of a property at request time"""
    monthly_rent: Money
    security_deposit: Money
    monthly_discount: Decimal = Decimal('0')  # percent
    min_months_for_discount: int = 0


@dataclass(frozen=True)
class Quote:
    monthly_rent: Money
    rent_amount: Money
    security_deposit: Money
    total_amount: Money


def compute_check_out(move_in: date, duration: int, duration_type: DurationType) -> date:
    """
    Check-out date for a stay of `duration` units starting on move_in

    Months are calendar months; a move-in on the 31st of a month followed by
    a shorter month lands on that month's last day.
    """
    if duration < 1:
        raise ValueError("Duration must be at least 1")

    if duration_type == DurationType.DAYS:
        return move_in + timedelta(days=duration)
    if duration_type == DurationType.WEEKS:
        return move_in + timedelta(weeks=duration)
    return move_in + relativedelta(months=duration)


def quote(terms: RentalTerms, duration: int, duration_type: DurationType) -> Quote:
    """
    Price a stay

    Days are charged at monthly/30, weeks at monthly/4, months at the full
    monthly rent. The monthly discount only applies to month-based stays of
    at least min_months_for_discount months. The deposit is added on top.
    """
    monthly = terms.monthly_rent

    if duration_type == DurationType.DAYS:
        rent = monthly / DAYS_PER_MONTH * duration
    elif duration_type == DurationType.WEEKS:
        rent = monthly / WEEKS_PER_MONTH * duration
    else:
        rent = monthly * duration

    discount_applies = (
        duration_type == DurationType.MONTHS
        and terms.monthly_discount > 0
        and duration >= terms.min_months_for_discount
    )
    if discount_applies:
        rent = rent - rent * (terms.monthly_discount / Decimal('100'))

    rent = rent.rounded()
    deposit = terms.security_deposit.rounded()
    return Quote(
        monthly_rent=monthly.rounded(),
        rent_amount=rent,
        security_deposit=deposit,
        total_amount=(rent + deposit).rounded(),
    )
