"""
Tests for availability checks and the occupancy calendar.
"""

from datetime import timedelta

import pytest

from tests.conftest import JUNE_1, JUNE_5, NOW
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import BookingStatus
from villa_booking.services import availability_service, booking_service

STAY = DateRange(JUNE_1, JUNE_5)


def shifted(days: int, length: int = 4) -> DateRange:
    start = JUNE_1 + timedelta(days=days)
    return DateRange(start, start + timedelta(days=length))


@pytest.mark.asyncio
async def test_empty_calendar_is_available(db_session):
    assert await availability_service.is_available(db_session, STAY, now=NOW)


@pytest.mark.asyncio
async def test_overlapping_range_unavailable(db_session, guest):
    await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)

    assert not await availability_service.is_available(db_session, shifted(2), now=NOW)
    assert not await availability_service.is_available(db_session, shifted(-2), now=NOW)
    assert not await availability_service.is_available(db_session, shifted(1, length=1), now=NOW)


@pytest.mark.asyncio
async def test_adjacent_ranges_available(db_session, guest):
    await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)

    assert await availability_service.is_available(db_session, shifted(4), now=NOW)
    assert await availability_service.is_available(db_session, shifted(-3, length=3), now=NOW)


@pytest.mark.asyncio
async def test_excluding_own_booking(db_session, guest):
    booking = await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)

    assert await availability_service.is_available(
        db_session, shifted(1), excluding=booking.id, now=NOW
    )


@pytest.mark.asyncio
async def test_cancelled_booking_does_not_block(db_session, guest):
    booking = await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)
    await booking_service.cancel_booking(db_session, booking.id, guest, now=NOW)

    assert await availability_service.is_available(db_session, STAY, now=NOW)


@pytest.mark.asyncio
async def test_lapsed_draft_expired_by_availability_check(db_session, guest):
    booking = await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)
    later = NOW + timedelta(hours=25)

    assert await availability_service.is_available(db_session, STAY, now=later)
    assert booking.status == BookingStatus.EXPIRED.value


@pytest.mark.asyncio
async def test_occupied_ranges_read_only(db_session, guest, other_guest):
    first = await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)
    await booking_service.create_booking(db_session, other_guest, shifted(10), 2, 1196, now=NOW)
    window = DateRange(JUNE_1 - timedelta(days=1), JUNE_1 + timedelta(days=30))

    ranges = await availability_service.occupied_ranges(db_session, window, now=NOW)
    assert ranges == [STAY, shifted(10)]

    later = NOW + timedelta(hours=25)
    assert await availability_service.occupied_ranges(db_session, window, now=later) == []
    # Lapsed but not yet observed by a state-changing call
    assert first.status == BookingStatus.DRAFT.value
