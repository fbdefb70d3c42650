"""
Payment window.

A reservation holds its dates for a fixed window measured from creation. The
window is checked lazily: whenever a booking is read or mutated, a booking
still in a windowed status past its deadline is moved to `expired`. Nothing
runs on a timer, and an expired booking never comes back.
"""

from datetime import datetime, timedelta
from typing import Optional

from villa_booking.domain.date_range import to_instant
from villa_booking.domain.lifecycle import WINDOWED_STATUSES, BookingStatus


def compute_deadline(started_at: datetime, window_hours: int) -> datetime:
    return to_instant(started_at) + timedelta(hours=window_hours)


def is_past_deadline(deadline: Optional[datetime], now: datetime) -> bool:
    if deadline is None:
        return False
    return to_instant(now) > to_instant(deadline)


def should_expire(status: BookingStatus, deadline: Optional[datetime], now: datetime) -> bool:
    """True the first time a windowed booking is observed past its deadline."""
    return BookingStatus(status) in WINDOWED_STATUSES and is_past_deadline(deadline, now)


def seconds_remaining(deadline: Optional[datetime], now: datetime) -> Optional[int]:
    if deadline is None:
        return None
    remaining = (to_instant(deadline) - to_instant(now)).total_seconds()
    return max(int(remaining), 0)
