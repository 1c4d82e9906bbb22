"""
Guest perks and owner preferred-tier rewards.

The tier tables are plain functions. Lookups that need the database go
through RewardsPolicy so rental pricing can be exercised with a fake.
"""

from typing import Any, Optional, Protocol

from sqlalchemy.engine import Engine

from pixiedvc.db.readers.owners import get_profile_rewards_enrollment
from pixiedvc.db.readers.rentals import (
    count_completed_guest_bookings,
    sum_owner_completed_points,
)

# (lifetime points upper bound, tier, bonus cents per point)
OWNER_TIERS: list[tuple[int, str, int]] = [
    (300, "base", 0),
    (600, "tier1", 50),
    (1000, "tier2", 100),
    (1500, "tier3", 150),
]
TOP_OWNER_TIER = ("tier4", 200)


def get_guest_perks_discount_pct(completed_booking_count: int) -> int:
    """
    Map a guest's completed stays to the discount applied to the platform margin.

    Example:
        >>> get_guest_perks_discount_pct(3)
        20
    """
    if completed_booking_count <= 1:
        return 0
    if completed_booking_count == 2:
        return 10
    if completed_booking_count == 3:
        return 20
    if completed_booking_count == 4:
        return 30
    return 40


def get_owner_preferred_tier(lifetime_points_rented: int) -> str:
    for upper_bound, tier, _ in OWNER_TIERS:
        if lifetime_points_rented < upper_bound:
            return tier
    return TOP_OWNER_TIER[0]


def get_owner_preferred_bonus_cents(lifetime_points_rented: int) -> int:
    for upper_bound, _, bonus in OWNER_TIERS:
        if lifetime_points_rented < upper_bound:
            return bonus
    return TOP_OWNER_TIER[1]


def apply_owner_bonus_with_margin(
    owner_bonus_candidate_cents: int,
    owner_max_bonus_cents: int,
    guest_reward_per_point_cents: int,
    spread_per_point_cents: int,
    min_spread_per_point_cents: int,
) -> int:
    """
    Cap an owner's bonus per point so the platform keeps its minimum spread.

    The bonus is the smallest of the tier candidate, the promotion's owner
    cap, and whatever spread is left after the guest reward and the minimum
    spread are taken out (never below zero).

    Args:
        owner_bonus_candidate_cents: Bonus earned by the owner's tier.
        owner_max_bonus_cents: Promotion cap on the owner bonus.
        guest_reward_per_point_cents: Discount per point already given to the guest.
        spread_per_point_cents: Guest rate minus owner rate, per point.
        min_spread_per_point_cents: Spread the platform must keep.

    Returns:
        int: Bonus cents per point to apply.
    """
    max_bonus_by_floor = max(
        0, spread_per_point_cents - guest_reward_per_point_cents - min_spread_per_point_cents
    )
    return min(owner_bonus_candidate_cents, owner_max_bonus_cents, max_bonus_by_floor)


def is_guest_perks_enrolled(profile: Optional[dict[str, Any]]) -> bool:
    return bool(profile and profile.get("guest_rewards_enrolled_at"))


def is_owner_rewards_enrolled(profile: Optional[dict[str, Any]]) -> bool:
    return bool(profile and profile.get("owner_rewards_enrolled_at"))


class RewardsPolicy(Protocol):
    def is_guest_enrolled(self, guest_user_id: str) -> bool: ...

    def count_completed_guest_bookings(self, guest_user_id: str) -> int: ...

    def is_owner_enrolled(self, owner_user_id: str) -> bool: ...

    def sum_owner_completed_points(self, owner_user_id: str) -> int: ...


class DatabaseRewardsPolicy:
    """RewardsPolicy backed by profiles, rentals and rental_milestones."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def is_guest_enrolled(self, guest_user_id: str) -> bool:
        with self.engine.connect() as conn:
            return is_guest_perks_enrolled(get_profile_rewards_enrollment(conn, guest_user_id))

    def count_completed_guest_bookings(self, guest_user_id: str) -> int:
        with self.engine.connect() as conn:
            return count_completed_guest_bookings(conn, guest_user_id)

    def is_owner_enrolled(self, owner_user_id: str) -> bool:
        with self.engine.connect() as conn:
            return is_owner_rewards_enrolled(get_profile_rewards_enrollment(conn, owner_user_id))

    def sum_owner_completed_points(self, owner_user_id: str) -> int:
        with self.engine.connect() as conn:
            return sum_owner_completed_points(conn, owner_user_id)
