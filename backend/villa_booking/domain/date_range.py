"""
DateRange value object.

A stay is the half-open interval [check_in, check_out): the guest occupies the
villa from check-in up to, but not including, check-out. Two stays therefore
overlap only when they share at least one night, and a check-out on the same
day as another stay's check-in is a valid turnover.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Union

from villa_booking.core.exceptions import InvalidInput

Instant = Union[datetime, date]


def to_instant(value: Instant) -> datetime:
    """Dates become midnight UTC; naive datetimes are read as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise InvalidInput(f"Expected a date or datetime, got {type(value).__name__}")


@dataclass(frozen=True)
class DateRange:
    check_in: datetime
    check_out: datetime

    def __post_init__(self):
        object.__setattr__(self, "check_in", to_instant(self.check_in))
        object.__setattr__(self, "check_out", to_instant(self.check_out))
        if self.check_out <= self.check_in:
            raise InvalidInput("Check-out must be after check-in")

    def overlaps(self, other: "DateRange") -> bool:
        return self.check_in < other.check_out and other.check_in < self.check_out

    @property
    def duration(self) -> timedelta:
        return self.check_out - self.check_in

    @property
    def nights(self) -> int:
        return math.ceil(self.duration / timedelta(days=1))

    def __str__(self) -> str:
        return f"{self.check_in.isoformat()} -> {self.check_out.isoformat()}"
