"""
Booking model: one guest's reservation of the villa for a date range.

Key design decisions:
- `status` is the only record of where a booking is in its lifecycle
- Cancelled and expired bookings are kept for audit, never deleted
- `version` enables compare-and-swap updates so concurrent mutations of one
  booking cannot both apply
- CHECK constraints mirror the field rules enforced by the services
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String

from villa_booking.db.base import Base, TimestampMixin, UTCDateTime
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import BookingStatus, PaymentMethod

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in BookingStatus)
_METHOD_VALUES = ", ".join(f"'{m.value}'" for m in PaymentMethod)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(String(64), ForeignKey("units.id"), nullable=False)
    owner_id = Column(String(64), nullable=True, index=True)

    check_in = Column(UTCDateTime(), nullable=False)
    check_out = Column(UTCDateTime(), nullable=False)
    guest_count = Column(Integer, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    status = Column(String(32), nullable=False, default=BookingStatus.DRAFT.value)

    # Customer info, set once
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    # Payment
    payment_method = Column(String(20), nullable=True)
    payment_deadline = Column(UTCDateTime(), nullable=True)
    payment_proof_ref = Column(String(2048), nullable=True)
    payment_submitted_at = Column(UTCDateTime(), nullable=True)

    special_requests = Column(String(500), nullable=True)

    # Terminal outcomes
    confirmed_at = Column(UTCDateTime(), nullable=True)
    expired_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by = Column(String(64), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="check_booking_dates_ordered"),
        CheckConstraint("guest_count BETWEEN 1 AND 8", name="check_booking_guest_count"),
        CheckConstraint("total_price >= 0", name="check_booking_total_price_non_negative"),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="check_booking_status"),
        CheckConstraint(
            f"payment_method IS NULL OR payment_method IN ({_METHOD_VALUES})",
            name="check_booking_payment_method",
        ),
        CheckConstraint(
            "payment_proof_ref IS NULL OR payment_method IS NOT NULL",
            name="check_booking_proof_requires_method",
        ),
        # refund_amount and cancelled_at are set together, and only when cancelled
        CheckConstraint(
            "(status = 'cancelled' AND cancelled_at IS NOT NULL AND refund_amount IS NOT NULL)"
            " OR (status != 'cancelled' AND cancelled_at IS NULL AND refund_amount IS NULL)",
            name="check_booking_cancellation_fields",
        ),
        # Overlap queries filter on unit and range
        Index("ix_bookings_unit_range", "unit_id", "check_in", "check_out"),
        Index("ix_bookings_status", "status"),
    )

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    @property
    def booking_status(self) -> BookingStatus:
        return BookingStatus(self.status)

    def customer_info(self) -> dict:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
        }

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, owner={self.owner_id}, status={self.status}, v={self.version})>"
