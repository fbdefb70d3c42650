"""Cancellation refund policy.

Tiered by whole days remaining until check-in, rounding the day count up:

- more than 7 days: full refund
- 3 to 7 days inclusive: half refund
- fewer than 3 days, or at/after check-in: no refund

Amounts are Decimals rounded half-up to cents.
"""

import math
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from villa_booking.domain.date_range import Instant, to_instant

FULL_REFUND_AFTER_DAYS = 7  # strictly more than this = full refund
PARTIAL_REFUND_DAYS = 3  # at least this many = partial refund

FULL_REFUND_PERCENT = 100
PARTIAL_REFUND_PERCENT = 50
NO_REFUND_PERCENT = 0

CENTS = Decimal("0.01")


def days_until_check_in(cancelled_at: Instant, check_in: Instant) -> int:
    remaining = to_instant(check_in) - to_instant(cancelled_at)
    return math.ceil(remaining / timedelta(days=1))


def refund_percentage(cancelled_at: Instant, check_in: Instant) -> int:
    days = days_until_check_in(cancelled_at, check_in)
    if days <= 0:
        return NO_REFUND_PERCENT
    if days > FULL_REFUND_AFTER_DAYS:
        return FULL_REFUND_PERCENT
    if days >= PARTIAL_REFUND_DAYS:
        return PARTIAL_REFUND_PERCENT
    return NO_REFUND_PERCENT


def refund(cancelled_at: datetime, check_in: datetime, total_price) -> Decimal:
    """Refund owed for cancelling at `cancelled_at` a stay starting at `check_in`."""
    price = Decimal(str(total_price))
    percentage = refund_percentage(cancelled_at, check_in)
    amount = price * percentage / 100
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def describe_policy() -> str:
    return (
        f"More than {FULL_REFUND_AFTER_DAYS} days before check-in: full refund. "
        f"{PARTIAL_REFUND_DAYS}-{FULL_REFUND_AFTER_DAYS} days before check-in: "
        f"{PARTIAL_REFUND_PERCENT}% refund. "
        f"Less than {PARTIAL_REFUND_DAYS} days before check-in: no refund."
    )
