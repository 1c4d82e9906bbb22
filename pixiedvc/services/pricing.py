"""
Owner payout and guest price calculations.

Owners renting points at their own home resort earn a premium per point,
since only home-resort owners can book that resort in the 11-month window.
Everything here is pure arithmetic in integer cents.
"""

from typing import Optional

from pixiedvc.config import (
    OWNER_BASE_RATE_PER_POINT_CENTS,
    OWNER_HOME_RESORT_PREMIUM_PER_POINT_CENTS,
)
from pixiedvc.schemas.matching import OwnerPayout

# Per-resort rate overrides keyed by booking resort id:
# {"<resort_id>": {"base_rate_per_point_cents": 1800, "premium_per_point_cents": 300}}
RESORT_RATE_OVERRIDES: dict[str, dict[str, int]] = {}


def compute_owner_payout(
    total_points: Optional[int],
    matched_membership_resort_id: Optional[str],
    booking_resort_id: Optional[str],
) -> OwnerPayout:
    """
    Compute an owner's per-point rate and total payout for a booking.

    Args:
        total_points: Points the booking needs. Missing or non-positive values
            produce a zero total.
        matched_membership_resort_id: Resort id of the membership that fulfils
            the booking.
        booking_resort_id: Resort id the guest requested.

    Returns:
        OwnerPayout: Base rate, premium, combined rate and total, and whether
        the home resort premium applied.
    """
    overrides = RESORT_RATE_OVERRIDES.get(booking_resort_id or "", {})
    base_rate = overrides.get("base_rate_per_point_cents", OWNER_BASE_RATE_PER_POINT_CENTS)
    premium_rate = overrides.get(
        "premium_per_point_cents", OWNER_HOME_RESORT_PREMIUM_PER_POINT_CENTS
    )

    premium_applies = bool(
        matched_membership_resort_id
        and booking_resort_id
        and matched_membership_resort_id == booking_resort_id
    )
    premium_per_point = premium_rate if premium_applies else 0
    owner_rate = base_rate + premium_per_point
    points = total_points if total_points and total_points > 0 else 0

    return OwnerPayout(
        owner_base_rate_per_point_cents=base_rate,
        owner_premium_per_point_cents=premium_per_point,
        owner_rate_per_point_cents=owner_rate,
        owner_total_cents=owner_rate * points,
        owner_home_resort_premium_applied=premium_applies,
    )


def compute_guest_rate_per_point(
    total_points: Optional[int], guest_total_cents: Optional[int]
) -> Optional[int]:
    """Return the guest's rounded rate per point, or None without positive points."""
    if not total_points or total_points <= 0 or guest_total_cents is None:
        return None
    return round(guest_total_cents / total_points)
