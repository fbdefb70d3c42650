"""
Booking repository.

Every query that asks about occupancy ignores released bookings (cancelled or
expired). Writes to an existing booking go through `save`, a compare-and-swap
on the booking's `version`: if someone else changed the row since we read it,
nothing is written and VersionConflict is raised.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.exceptions import Conflict, VersionConflict
from villa_booking.core.logging import get_logger
from villa_booking.core.metrics import record_version_conflict
from villa_booking.db.base import utcnow
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import RELEASED_STATUSES, BookingStatus
from villa_booking.models.booking import Booking
from villa_booking.models.unit import Unit

logger = get_logger(__name__)

# Name of the PostgreSQL exclusion constraint installed by the migrations
OVERLAP_CONSTRAINT = "excl_bookings_no_overlap"

_RELEASED = [s.value for s in RELEASED_STATUSES]


class BookingRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # Units

    async def get_unit(self, unit_id: str) -> Optional[Unit]:
        result = await self.db.execute(select(Unit).where(Unit.id == unit_id))
        return result.scalar_one_or_none()

    async def ensure_unit(self, unit_id: str, name: str) -> Unit:
        unit = await self.get_unit(unit_id)
        if unit is None:
            unit = Unit(id=unit_id, name=name)
            self.db.add(unit)
            await self.db.flush()
            logger.info("unit_created", unit_id=unit_id)
        return unit

    async def bump_unit_version(self, unit_id: str, seen_version: int) -> bool:
        """Compare-and-swap the unit version. False means another create won."""
        result = await self.db.execute(
            update(Unit)
            .where(Unit.id == unit_id, Unit.version == seen_version)
            .values(version=Unit.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            record_version_conflict("unit")
            return False
        return True

    # Bookings

    async def get(self, booking_id: int) -> Optional[Booking]:
        result = await self.db.execute(select(Booking).where(Booking.id == booking_id))
        return result.scalar_one_or_none()

    async def find_overlapping(
        self,
        date_range: DateRange,
        unit_id: str,
        exclude_id: Optional[int] = None,
    ) -> list[Booking]:
        """Active bookings sharing at least one night with `date_range`."""
        query = select(Booking).where(
            Booking.unit_id == unit_id,
            Booking.status.notin_(_RELEASED),
            Booking.check_in < date_range.check_out,
            Booking.check_out > date_range.check_in,
        )
        if exclude_id is not None:
            query = query.where(Booking.id != exclude_id)
        result = await self.db.execute(query.order_by(Booking.check_in.asc()))
        return list(result.scalars().all())

    async def add(self, booking: Booking) -> Booking:
        self.db.add(booking)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            if OVERLAP_CONSTRAINT in str(exc.orig):
                raise Conflict("Selected dates are not available") from exc
            raise
        await self.db.refresh(booking)
        return booking

    async def save(self, booking: Booking, changes: dict, now: Optional[datetime] = None) -> Booking:
        """Apply `changes` only if the row still has the version we read."""
        values = dict(changes)
        values["updated_at"] = now or utcnow()
        result = await self.db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.version == booking.version)
            .values(**values, version=Booking.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            record_version_conflict("booking")
            logger.info(
                "booking_version_conflict",
                booking_id=booking.id,
                seen_version=booking.version,
            )
            raise VersionConflict(
                f"Booking {booking.id} was modified concurrently. Reload and retry."
            )
        await self.db.refresh(booking)
        return booking

    async def list_for_owner(self, owner_id: str) -> list[Booking]:
        result = await self.db.execute(
            select(Booking)
            .where(Booking.owner_id == owner_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_status(
        self,
        status: BookingStatus,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Booking]:
        result = await self.db.execute(
            select(Booking)
            .where(Booking.status == BookingStatus(status).value)
            .order_by(Booking.created_at.asc(), Booking.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())
