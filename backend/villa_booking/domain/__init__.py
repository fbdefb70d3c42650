"""
Pure booking rules: date ranges, the lifecycle table, refunds, the payment
window and pricing. No I/O in this package.
"""

from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import BookingStatus, PaymentMethod

__all__ = ["DateRange", "BookingStatus", "PaymentMethod"]
