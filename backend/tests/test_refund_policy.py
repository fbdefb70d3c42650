"""
Tests for the cancellation refund tiers.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from villa_booking.domain import refund_policy

CHECK_IN = datetime(2024, 6, 1, tzinfo=timezone.utc)


def before_check_in(**kwargs) -> datetime:
    return CHECK_IN - timedelta(**kwargs)


@pytest.mark.parametrize(
    "cancelled_at, expected",
    [
        (before_check_in(days=30), Decimal("1196.00")),
        (before_check_in(days=7, hours=1), Decimal("1196.00")),
        (before_check_in(days=7), Decimal("598.00")),
        (before_check_in(days=5), Decimal("598.00")),
        (before_check_in(days=3), Decimal("598.00")),
        (before_check_in(days=2, hours=12), Decimal("598.00")),
        (before_check_in(days=2), Decimal("0.00")),
        (before_check_in(hours=1), Decimal("0.00")),
        (CHECK_IN, Decimal("0.00")),
        (CHECK_IN + timedelta(days=1), Decimal("0.00")),
    ],
)
def test_refund_tiers(cancelled_at, expected):
    assert refund_policy.refund(cancelled_at, CHECK_IN, Decimal("1196")) == expected


def test_days_round_up():
    assert refund_policy.days_until_check_in(before_check_in(days=2, hours=1), CHECK_IN) == 3
    assert refund_policy.days_until_check_in(before_check_in(days=3), CHECK_IN) == 3
    assert refund_policy.days_until_check_in(CHECK_IN + timedelta(hours=5), CHECK_IN) == 0


def test_refund_never_exceeds_price_and_never_negative():
    for hours in range(-48, 24 * 20, 5):
        amount = refund_policy.refund(before_check_in(hours=hours), CHECK_IN, Decimal("1196"))
        assert Decimal("0") <= amount <= Decimal("1196")


def test_refund_grows_with_notice():
    """Cancelling earlier never refunds less."""
    previous = None
    for hours in range(0, 24 * 12):
        amount = refund_policy.refund(before_check_in(hours=hours), CHECK_IN, Decimal("1196"))
        if previous is not None:
            assert amount >= previous
        previous = amount


def test_half_refund_rounds_to_cents():
    assert refund_policy.refund(before_check_in(days=4), CHECK_IN, Decimal("0.05")) == Decimal("0.03")
    assert refund_policy.refund(before_check_in(days=4), CHECK_IN, 299) == Decimal("149.50")


def test_percentage_matches_amount():
    assert refund_policy.refund_percentage(before_check_in(days=10), CHECK_IN) == 100
    assert refund_policy.refund_percentage(before_check_in(days=4), CHECK_IN) == 50
    assert refund_policy.refund_percentage(before_check_in(days=1), CHECK_IN) == 0


def test_policy_text_mentions_tiers():
    text = refund_policy.describe_policy()
    assert "7" in text and "3" in text and "50%" in text


def test_refund_for_a_stay_ten_days_out():
    today = datetime(2024, 5, 22, 10, 0, tzinfo=timezone.utc)
    check_in = today + timedelta(days=10)
    price = Decimal("1196")

    assert refund_policy.refund(today, check_in, price) == Decimal("1196.00")
    assert refund_policy.refund(check_in - timedelta(days=5), check_in, price) == Decimal("598.00")
    assert refund_policy.refund(check_in - timedelta(days=1), check_in, price) == Decimal("0.00")
