"""Pricing engine - hourly rate times booked duration.

Money is Decimal end to end, rounded half-up to cents.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from coworkly.domain.errors import InvalidIntervalError, ValidationError

CENTS = Decimal("0.01")
_MICROSECONDS_PER_HOUR = Decimal(3600 * 1_000_000)


def duration_hours(start_date: datetime, end_date: datetime) -> Decimal:
    """Exact length of [start_date, end_date) in hours (fractional)."""
    delta = end_date - start_date
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    return Decimal(micros) / _MICROSECONDS_PER_HOUR


def compute_price(
    hourly_rate: Decimal | int | str,
    start_date: datetime,
    end_date: datetime,
) -> Decimal:
    """Compute the total charge for booking a space over an interval.

    Args:
        hourly_rate: Space price per hour (non-negative).
        start_date: Interval start.
        end_date: Interval end.

    Returns:
        rate x hours, quantised to 2 decimal places.

    Raises:
        InvalidIntervalError: If the duration is zero or negative.
        ValidationError: If the rate is negative.
    """
    rate = Decimal(str(hourly_rate)) if not isinstance(hourly_rate, Decimal) else hourly_rate
    if rate < 0:
        raise ValidationError(f"Hourly rate must be non-negative, got {rate}", field="price")

    hours = duration_hours(start_date, end_date)
    if hours <= 0:
        raise InvalidIntervalError(start_date, end_date)

    return (rate * hours).quantize(CENTS, rounding=ROUND_HALF_UP)
