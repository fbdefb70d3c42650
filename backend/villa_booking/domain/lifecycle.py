"""
Booking state machine.

    draft -> awaiting_customer_info -> awaiting_payment -> pending_review -> confirmed

`cancelled` and `expired` are reachable from every non-terminal state.
`confirmed`, `cancelled` and `expired` are terminal. The status column is the
single source of truth; nothing is inferred from which optional fields are set.
"""

import enum

from villa_booking.core.exceptions import InvalidState


class BookingStatus(str, enum.Enum):
    DRAFT = "draft"
    AWAITING_CUSTOMER_INFO = "awaiting_customer_info"
    AWAITING_PAYMENT = "awaiting_payment"
    PENDING_REVIEW = "pending_review"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PaymentMethod(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    QR_TRANSFER = "qr_transfer"


TERMINAL_STATUSES = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.CANCELLED,
    BookingStatus.EXPIRED,
})

# Statuses whose dates no longer block the calendar
RELEASED_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.EXPIRED})

# Statuses the payment window applies to; proof submission stops the clock
WINDOWED_STATUSES = frozenset({
    BookingStatus.DRAFT,
    BookingStatus.AWAITING_CUSTOMER_INFO,
    BookingStatus.AWAITING_PAYMENT,
})

TRANSITIONS = {
    BookingStatus.DRAFT: {
        BookingStatus.AWAITING_CUSTOMER_INFO,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    },
    BookingStatus.AWAITING_CUSTOMER_INFO: {
        BookingStatus.AWAITING_PAYMENT,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    },
    BookingStatus.AWAITING_PAYMENT: {
        BookingStatus.PENDING_REVIEW,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    },
    BookingStatus.PENDING_REVIEW: {
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    },
    BookingStatus.CONFIRMED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.EXPIRED: set(),
}


def is_terminal(status: BookingStatus) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]


def assert_transition(current: BookingStatus, target: BookingStatus) -> None:
    current, target = BookingStatus(current), BookingStatus(target)
    if not can_transition(current, target):
        raise InvalidState(
            f"Cannot move booking from {current.value} to {target.value}"
        )


def assert_in(current: BookingStatus, allowed: set, action: str) -> None:
    current = BookingStatus(current)
    if current not in allowed:
        expected = ", ".join(sorted(s.value for s in allowed))
        raise InvalidState(
            f"Cannot {action} while booking is {current.value} (expected: {expected})"
        )
