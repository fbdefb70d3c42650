"""
The bookable unit (the villa).

Key design decisions:
- There is exactly one row in practice, but bookings reference it by id so the
  serialization point is explicit.
- `version` is the compare-and-swap target that serializes check-and-insert:
  every successful create bumps it, so two creates that both read the same
  version cannot both commit.
"""

from sqlalchemy import Column, Integer, String

from villa_booking.db.base import Base, TimestampMixin


class Unit(Base, TimestampMixin):
    __tablename__ = "units"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, version={self.version})>"
