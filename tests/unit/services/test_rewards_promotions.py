"""
Unit tests for loyalty tier tables, the owner bonus margin cap and
promotion window checks.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest

from pixiedvc.services.promotions import get_active_promotion, is_within_window
from pixiedvc.services.rewards import (
    apply_owner_bonus_with_margin,
    get_guest_perks_discount_pct,
    get_owner_preferred_bonus_cents,
    get_owner_preferred_tier,
    is_guest_perks_enrolled,
    is_owner_rewards_enrolled,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
@pytest.mark.parametrize(
    "completed,expected",
    [(0, 0), (1, 0), (2, 10), (3, 20), (4, 30), (5, 40), (12, 40)],
)
def test_guest_perks_discount_pct(completed, expected) -> None:
    assert get_guest_perks_discount_pct(completed) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "lifetime_points,tier,bonus",
    [
        (0, "base", 0),
        (299, "base", 0),
        (300, "tier1", 50),
        (999, "tier2", 100),
        (1000, "tier3", 150),
        (1500, "tier4", 200),
        (10000, "tier4", 200),
    ],
)
def test_owner_preferred_tiers(lifetime_points, tier, bonus) -> None:
    assert get_owner_preferred_tier(lifetime_points) == tier
    assert get_owner_preferred_bonus_cents(lifetime_points) == bonus


@pytest.mark.unit
def test_owner_bonus_limited_by_candidate_and_promotion_cap() -> None:
    assert apply_owner_bonus_with_margin(100, 150, 0, 700, 0) == 100
    assert apply_owner_bonus_with_margin(200, 150, 0, 700, 0) == 150


@pytest.mark.unit
def test_owner_bonus_keeps_minimum_spread() -> None:
    """Guest reward and minimum spread come out of the spread before the owner bonus."""
    assert apply_owner_bonus_with_margin(200, 200, 100, 700, 560) == 40
    assert apply_owner_bonus_with_margin(200, 200, 200, 700, 600) == 0


@pytest.mark.unit
def test_enrollment_flags() -> None:
    assert is_guest_perks_enrolled({"guest_rewards_enrolled_at": NOW}) is True
    assert is_guest_perks_enrolled({"guest_rewards_enrolled_at": None}) is False
    assert is_guest_perks_enrolled(None) is False
    assert is_owner_rewards_enrolled({"owner_rewards_enrolled_at": NOW}) is True
    assert is_owner_rewards_enrolled({}) is False


@pytest.mark.unit
def test_promotion_window_bounds() -> None:
    promotion = {
        "is_active": True,
        "starts_at": NOW - timedelta(days=1),
        "ends_at": NOW + timedelta(days=1),
    }

    assert is_within_window(promotion, NOW) is True
    assert is_within_window(promotion, NOW - timedelta(days=2)) is False
    assert is_within_window(promotion, NOW + timedelta(days=2)) is False
    assert is_within_window({"is_active": True, "starts_at": None, "ends_at": None}, NOW) is True
    assert is_within_window({**promotion, "is_active": False}, NOW) is False


@pytest.mark.unit
@patch("pixiedvc.services.promotions.get_latest_active_promotion")
def test_newest_promotion_outside_window_means_none(mock_latest: Mock) -> None:
    """Older active promotions are not consulted when the newest is out of window."""
    mock_latest.return_value = {
        "id": "promo-2",
        "is_active": True,
        "starts_at": NOW + timedelta(days=3),
        "ends_at": None,
    }

    assert get_active_promotion(MagicMock(), NOW) is None
    mock_latest.assert_called_once()


@pytest.mark.unit
@patch("pixiedvc.services.promotions.get_latest_active_promotion")
def test_active_promotion_returned(mock_latest: Mock) -> None:
    promotion = {"id": "promo-1", "is_active": True, "starts_at": None, "ends_at": None}
    mock_latest.return_value = promotion

    assert get_active_promotion(MagicMock(), NOW) == promotion
