"""
Booking lifecycle service.

CONCURRENCY STRATEGY: Optimistic Locking on the Unit, Compare-and-Swap on Bookings
=================================================================================

Problem:
  Two guests ask for overlapping dates at the same moment. Both run the
  availability check before either has inserted, both see a free calendar,
  both insert. Result: a double-booked villa.

Solution:
  The villa is a row in `units` with a `version` column. create() runs
  check-and-insert as one optimistic critical section:

  1. Read the unit's current version
  2. Look for active bookings overlapping the requested range
  3. INSERT the draft booking
  4. UPDATE units SET version = version + 1
     WHERE id = :unit AND version = :seen_version
  5. If rows_affected == 0, another create committed in between -> roll back
     and start over from step 1, where its booking is now visible

  On PostgreSQL the UPDATE in step 4 blocks on the winner's row lock and then
  re-evaluates the WHERE clause against the committed version, so the loser
  always sees rowcount 0. The migrations also install an exclusion constraint
  on tstzrange(check_in, check_out, '[)') as the final safety net; a violation
  at INSERT time is reported as Conflict.

Mutations of one booking:
  Every transition is a compare-and-swap on bookings.version (see
  BookingRepository.save). A cancel racing a proof submission cannot both
  apply; the loser gets VersionConflict and must reload.

Expiry:
  Lazy. Any read or mutation of a windowed booking past its payment deadline
  moves it to `expired` first. When that happens inside a mutation, the expiry
  is committed and the caller gets WindowExpired.
"""

import time
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.config import get_settings
from villa_booking.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidState,
    InvalidUpdate,
    NotFound,
    WindowExpired,
)
from villa_booking.core.logging import get_logger
from villa_booking.core.metrics import booking_create_latency, track_transition
from villa_booking.core.security import Caller
from villa_booking.db.base import utcnow
from villa_booking.domain import pricing, refund_policy
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import (
    BookingStatus,
    PaymentMethod,
    RELEASED_STATUSES,
    assert_in,
    assert_transition,
    is_terminal,
)
from villa_booking.domain.payment_window import compute_deadline
from villa_booking.models.booking import Booking
from villa_booking.repositories.booking_repository import BookingRepository
from villa_booking.schemas.booking import BookingUpdate, CustomerInfo
from villa_booking.services import (
    availability_service,
    cache_service,
    payment_slip_service,
    payment_window,
)
from villa_booking.services.access import load_booking

logger = get_logger(__name__)

MAX_TEXT_LENGTH = 500
ALLOWED_UPDATES = frozenset(BookingUpdate.model_fields)


def _check_text(value: Optional[str], field: str) -> Optional[str]:
    if value is not None and len(value) > MAX_TEXT_LENGTH:
        raise InvalidInput(f"{field} cannot exceed {MAX_TEXT_LENGTH} characters")
    return value


def _check_price(total_price) -> Decimal:
    try:
        price = Decimal(str(total_price))
    except (InvalidOperation, ValueError):
        raise InvalidInput("Total price must be a number")
    if not price.is_finite() or price < 0:
        raise InvalidInput("Total price must be a non-negative amount")
    return price


def _check_guests(guest_count: int) -> int:
    settings = get_settings()
    if not isinstance(guest_count, int) or isinstance(guest_count, bool):
        raise InvalidInput("Number of guests must be a whole number")
    if not settings.MIN_GUESTS <= guest_count <= settings.MAX_GUESTS:
        raise InvalidInput(
            f"Number of guests must be between {settings.MIN_GUESTS} and {settings.MAX_GUESTS}"
        )
    return guest_count


async def _load_live(
    db: AsyncSession,
    repo: BookingRepository,
    booking_id: int,
    caller: Caller,
    now: datetime,
) -> Booking:
    """Load for mutation, applying lazy expiry first."""
    booking = await load_booking(repo, booking_id, caller)
    if await payment_window.expire_if_lapsed(repo, booking, now):
        await db.commit()
        raise WindowExpired("The payment window for this booking has closed")
    return booking


@track_transition("create")
async def create_booking(
    db: AsyncSession,
    caller: Caller,
    date_range: DateRange,
    guest_count: int,
    total_price,
    special_requests: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Create a draft booking for `date_range`.
    Retries the optimistic critical section up to MAX_CREATE_ATTEMPTS times.
    """
    settings = get_settings()
    now = now or utcnow()

    _check_guests(guest_count)
    price = _check_price(total_price)
    _check_text(special_requests, "Special requests")

    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range.check_in < today:
        raise InvalidInput("Check-in date cannot be in the past")

    repo = BookingRepository(db)
    started = time.perf_counter()

    for attempt in range(1, settings.MAX_CREATE_ATTEMPTS + 1):
        # Step 1: Read the unit version we will swap against
        unit = await repo.get_unit(settings.UNIT_ID)
        if unit is None:
            raise NotFound(f"Bookable unit {settings.UNIT_ID} is not configured")
        seen_version = unit.version

        # Step 2: Availability check
        conflicts = await availability_service.find_conflicts(db, date_range, now=now)
        if conflicts:
            logger.warning(
                "booking_conflict",
                check_in=date_range.check_in.isoformat(),
                check_out=date_range.check_out.isoformat(),
                conflicting_ids=[b.id for b in conflicts],
            )
            raise Conflict("Selected dates are not available")

        # Step 3: Insert the draft
        booking = Booking(
            unit_id=settings.UNIT_ID,
            owner_id=caller.user_id,
            check_in=date_range.check_in,
            check_out=date_range.check_out,
            guest_count=guest_count,
            total_price=price,
            status=BookingStatus.DRAFT.value,
            special_requests=special_requests,
            payment_deadline=compute_deadline(now, settings.PAYMENT_WINDOW_HOURS),
            created_at=now,
            updated_at=now,
        )
        await repo.add(booking)

        # Step 4: Claim the unit version
        if not await repo.bump_unit_version(settings.UNIT_ID, seen_version):
            logger.info(
                "booking_create_retry",
                attempt=attempt,
                reason="version_conflict",
            )
            await db.rollback()
            if attempt == settings.MAX_CREATE_ATTEMPTS:
                raise Conflict("Booking failed due to high demand. Please try again.")
            continue

        cache_service.mark_calendar_dirty(db)
        booking_create_latency.observe(time.perf_counter() - started)
        logger.info(
            "booking_created",
            booking_id=booking.id,
            owner_id=caller.user_id,
            check_in=date_range.check_in.isoformat(),
            check_out=date_range.check_out.isoformat(),
            guests=guest_count,
            attempt=attempt,
        )
        return booking

    # Should not reach here, but just in case
    raise Conflict("Booking failed unexpectedly")


@track_transition("attach_customer_info")
async def attach_customer_info(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    info: CustomerInfo,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Record the guest's contact details. Submitting the same details again is a
    no-op; different details after the first submission are rejected.
    """
    now = now or utcnow()
    repo = BookingRepository(db)
    booking = await _load_live(db, repo, booking_id, caller, now)

    submitted = info.model_dump()
    if booking.booking_status == BookingStatus.AWAITING_CUSTOMER_INFO:
        if booking.customer_info() == submitted:
            return booking
        raise InvalidState("Customer information cannot be changed after it has been submitted")

    assert_in(booking.status, {BookingStatus.DRAFT}, "attach customer information")

    changes = dict(submitted, status=BookingStatus.AWAITING_CUSTOMER_INFO.value)
    if booking.owner_id is None:
        changes["owner_id"] = caller.user_id
    await repo.save(booking, changes, now=now)

    logger.info(
        "customer_info_attached", booking_id=booking.id, email=info.email, phone=info.phone
    )
    return booking


@track_transition("select_payment_method")
async def select_payment_method(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    method: PaymentMethod,
    now: Optional[datetime] = None,
) -> Booking:
    now = now or utcnow()
    repo = BookingRepository(db)
    booking = await _load_live(db, repo, booking_id, caller, now)

    assert_in(booking.status, {BookingStatus.AWAITING_CUSTOMER_INFO}, "select a payment method")

    deadline = payment_window.start(booking, now)
    await repo.save(
        booking,
        {
            "payment_method": PaymentMethod(method).value,
            "payment_deadline": deadline,
            "status": BookingStatus.AWAITING_PAYMENT.value,
        },
        now=now,
    )

    logger.info(
        "payment_method_selected",
        booking_id=booking.id,
        method=booking.payment_method,
        deadline=deadline.isoformat(),
    )
    return booking


async def submit_payment_proof(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    proof_ref: str,
    now: Optional[datetime] = None,
) -> Booking:
    return await payment_slip_service.submit(db, booking_id, caller, proof_ref, now=now)


@track_transition("confirm")
async def confirm_booking(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    now: Optional[datetime] = None,
) -> Booking:
    if not caller.is_reviewer:
        raise Forbidden("Only a reviewer can confirm a booking")

    now = now or utcnow()
    repo = BookingRepository(db)
    booking = await _load_live(db, repo, booking_id, caller, now)

    assert_in(booking.status, {BookingStatus.PENDING_REVIEW}, "confirm")
    await repo.save(
        booking,
        {"status": BookingStatus.CONFIRMED.value, "confirmed_at": now},
        now=now,
    )

    logger.info("booking_confirmed", booking_id=booking.id, reviewer_id=caller.user_id)
    return booking


@track_transition("cancel")
async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Cancel from any non-terminal state. The refund is fixed at this moment and
    never recomputed.
    """
    now = now or utcnow()
    _check_text(reason, "Cancellation reason")

    repo = BookingRepository(db)
    booking = await _load_live(db, repo, booking_id, caller, now)

    if booking.booking_status == BookingStatus.CANCELLED:
        raise InvalidState("Booking is already cancelled")
    if is_terminal(booking.booking_status):
        raise InvalidState(f"Cannot cancel a booking that is {booking.status}")
    assert_transition(booking.status, BookingStatus.CANCELLED)

    refund_amount = refund_policy.refund(now, booking.check_in, booking.total_price)
    await repo.save(
        booking,
        {
            "status": BookingStatus.CANCELLED.value,
            "cancelled_at": now,
            "cancelled_by": caller.user_id,
            "cancellation_reason": reason or "",
            "refund_amount": refund_amount,
        },
        now=now,
    )
    cache_service.mark_calendar_dirty(db)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        cancelled_by=caller.user_id,
        by_reviewer=caller.is_reviewer,
        refund_amount=str(refund_amount),
    )
    return booking


async def reject_booking(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    reason: str,
    now: Optional[datetime] = None,
) -> Booking:
    """A reviewer's rejection is a cancellation made by the reviewer."""
    if not caller.is_reviewer:
        raise Forbidden("Only a reviewer can reject a booking")
    return await cancel_booking(db, booking_id, caller, reason=reason, now=now)


def parse_update(payload: Mapping) -> BookingUpdate:
    """Reject anything outside the allow-list before touching the booking."""
    if not isinstance(payload, Mapping):
        raise InvalidUpdate("Update must be an object")
    unknown = set(payload) - ALLOWED_UPDATES
    if unknown:
        raise InvalidUpdate(f"Invalid updates: {', '.join(sorted(unknown))}")
    if not payload:
        raise InvalidUpdate("No updates given")
    try:
        return BookingUpdate.model_validate(dict(payload))
    except ValidationError as exc:
        raise InvalidUpdate(str(exc.errors()[0]["msg"]))


@track_transition("update")
async def update_booking(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    payload: Mapping,
    now: Optional[datetime] = None,
) -> Booking:
    update = parse_update(payload)
    _check_text(update.special_requests, "Special requests")

    now = now or utcnow()
    repo = BookingRepository(db)
    booking = await _load_live(db, repo, booking_id, caller, now)

    if booking.booking_status in RELEASED_STATUSES:
        raise InvalidState(f"Cannot update a booking that is {booking.status}")

    changes = update.model_dump(exclude_unset=True)
    await repo.save(booking, changes, now=now)

    logger.info("booking_updated", booking_id=booking.id, fields=sorted(changes))
    return booking


async def get_booking(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    now: Optional[datetime] = None,
) -> Booking:
    repo = BookingRepository(db)
    booking = await load_booking(repo, booking_id, caller)
    await payment_window.expire_if_lapsed(repo, booking, now or utcnow())
    return booking


async def get_user_bookings(
    db: AsyncSession,
    caller: Caller,
    now: Optional[datetime] = None,
) -> list[Booking]:
    """All bookings owned by the caller, newest first."""
    now = now or utcnow()
    repo = BookingRepository(db)
    bookings = await repo.list_for_owner(caller.user_id)
    for booking in bookings:
        await payment_window.expire_if_lapsed(repo, booking, now)
    return bookings


async def list_for_review(
    db: AsyncSession,
    caller: Caller,
    status: BookingStatus = BookingStatus.PENDING_REVIEW,
    limit: int = 50,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> list[Booking]:
    if not caller.is_reviewer:
        raise Forbidden("Reviewer role required")

    now = now or utcnow()
    repo = BookingRepository(db)
    bookings = await repo.list_by_status(status, limit=limit, offset=offset)
    live = []
    for booking in bookings:
        if await payment_window.expire_if_lapsed(repo, booking, now):
            continue
        live.append(booking)
    return live


async def refund_quote(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    now: Optional[datetime] = None,
) -> dict:
    """
    What cancelling right now would refund, without cancelling. A cancelled
    booking reports the refund it was given; other terminal bookings cannot
    be cancelled and have nothing to quote.
    """
    now = now or utcnow()
    booking = await get_booking(db, booking_id, caller, now=now)

    if booking.booking_status != BookingStatus.CANCELLED and is_terminal(booking.booking_status):
        raise InvalidState(f"No refund quote for a booking that is {booking.status}")

    if booking.booking_status == BookingStatus.CANCELLED:
        amount = Decimal(booking.refund_amount)
        days = refund_policy.days_until_check_in(booking.cancelled_at, booking.check_in)
        percentage = refund_policy.refund_percentage(booking.cancelled_at, booking.check_in)
    else:
        amount = refund_policy.refund(now, booking.check_in, booking.total_price)
        days = refund_policy.days_until_check_in(now, booking.check_in)
        percentage = refund_policy.refund_percentage(now, booking.check_in)

    return {
        "booking_id": booking.id,
        "days_until_check_in": days,
        "refund_percentage": percentage,
        "refund_amount": amount,
        "policy": refund_policy.describe_policy(),
    }


async def payment_window_status(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    now: Optional[datetime] = None,
) -> dict:
    now = now or utcnow()
    booking = await get_booking(db, booking_id, caller, now=now)
    return payment_window.window_status(booking, now)


def quote_price(date_range: DateRange) -> pricing.PriceQuote:
    settings = get_settings()
    return pricing.quote(date_range, settings.NIGHTLY_RATE, settings.TAX_RATE, settings.CURRENCY)
