"""Unit tests for the pure loyalty scoring functions."""

from decimal import Decimal

import pytest

from backoffice.core.config import LoyaltyPolicy
from backoffice.core.exceptions import InvalidArgumentError
from backoffice.services.loyalty_service import (
    ActivityProfile,
    LoyaltyTier,
    classify_tier,
    compute_activity_score,
    round_money,
    score_profile,
    validate_amount,
    validate_customer_id,
)


def test_score_components_add_up(policy):
    """Frequency, completion and spend points are summed."""
    profile = ActivityProfile(booking_count=3, completed_count=3, total_spent=Decimal("3000"))
    # 30 frequency + 30 completion + 3 spend
    assert compute_activity_score(profile, policy) == pytest.approx(63.0)


def test_score_components_are_capped(policy):
    """Each component stops at its cap."""
    profile = ActivityProfile(booking_count=40, completed_count=40, total_spent=Decimal("1000000"))
    assert compute_activity_score(profile, policy) == pytest.approx(100.0)


def test_partial_completion_rate(policy):
    """Completion points scale with the completed share."""
    profile = ActivityProfile(booking_count=4, completed_count=1, total_spent=Decimal("0"))
    assert compute_activity_score(profile, policy) == pytest.approx(40.0 + 7.5)


@pytest.mark.parametrize(
    "score,tier",
    [
        (100.0, LoyaltyTier.PLATINUM),
        (70.0, LoyaltyTier.PLATINUM),
        (69.999, LoyaltyTier.GOLD),
        (50.0, LoyaltyTier.GOLD),
        (49.999, LoyaltyTier.SILVER),
        (30.0, LoyaltyTier.SILVER),
        (29.999, LoyaltyTier.BRONZE),
        (0.0, LoyaltyTier.BRONZE),
    ],
)
def test_tier_thresholds_are_inclusive(policy, score, tier):
    """A score exactly on a threshold gets the higher tier."""
    assert classify_tier(score, policy) == tier


def test_no_history_gets_zero_bonus(policy):
    """A customer without bookings is bronze with no bonus."""
    bonus = score_profile(ActivityProfile(), policy)

    assert bonus.score == 0.0
    assert bonus.tier == LoyaltyTier.BRONZE
    assert bonus.bonus_percentage == 0.0
    assert bonus.reason == "No booking history"


def test_low_activity_gets_bronze_bonus(policy):
    """One unpaid open booking scores bronze and earns the bronze bonus."""
    bonus = score_profile(ActivityProfile(booking_count=1), policy)

    assert bonus.score == pytest.approx(10.0)
    assert bonus.tier == LoyaltyTier.BRONZE
    assert bonus.bonus_percentage == 2.0


@pytest.mark.parametrize(
    "profile,tier,percentage",
    [
        (ActivityProfile(1, 1, Decimal("1000")), LoyaltyTier.SILVER, 5.0),
        (ActivityProfile(3, 3, Decimal("3000")), LoyaltyTier.GOLD, 10.0),
        (ActivityProfile(5, 5, Decimal("5000")), LoyaltyTier.PLATINUM, 15.0),
    ],
)
def test_tier_bonus_table(policy, profile, tier, percentage):
    """Each tier maps to its bonus percentage."""
    bonus = score_profile(profile, policy)

    assert bonus.tier == tier
    assert bonus.bonus_percentage == percentage
    assert bonus.activity_score == bonus.score
    assert tier.value.capitalize() in bonus.reason


def test_custom_policy_changes_tiers():
    """Thresholds and bonuses come from the policy."""
    policy = LoyaltyPolicy(gold_threshold=40.0, gold_bonus=12.5)
    bonus = score_profile(ActivityProfile(1, 1, Decimal("0")), policy)

    assert bonus.tier == LoyaltyTier.GOLD
    assert bonus.bonus_percentage == 12.5


@pytest.mark.parametrize(
    "value,expected",
    [
        (Decimal("100.005"), Decimal("100.01")),
        (Decimal("100.004"), Decimal("100.00")),
        (Decimal("0.125"), Decimal("0.13")),
    ],
)
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


@pytest.mark.parametrize("value", [None, 0, -1, "abc", True])
def test_invalid_customer_id(value):
    with pytest.raises(InvalidArgumentError) as exc_info:
        validate_customer_id(value)
    assert exc_info.value.status_code == 400
    assert exc_info.value.body["field"] == "user_id"


def test_customer_id_accepts_numeric_string():
    assert validate_customer_id("42") == 42


@pytest.mark.parametrize("value", [None, 0, -5, "NaN", "not-a-number", "Infinity"])
def test_invalid_amount(value):
    with pytest.raises(InvalidArgumentError) as exc_info:
        validate_amount(value)
    assert exc_info.value.body["success"] is False


def test_amount_from_float_keeps_cents():
    assert validate_amount(19.99) == Decimal("19.99")
