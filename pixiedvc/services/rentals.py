"""
Rental materialization for accepted matches.

ensure_rental_for_match is safe to call repeatedly: the rental row is keyed
by match_id, milestones are seeded and the owner bonus is settled only by the
call that inserted the rental, and the guest discount is written at most once
per booking.

Loyalty pricing runs before the rental is written:

- Guest perks take a percentage off the platform margin
  (guest total minus owner total), never off the owner payout.
- Owner preferred-tier bonuses are capped so that the guest reward plus the
  owner bonus never eat into the promotion's minimum spread.

Any failure in those enrichment steps is logged and the rental is written
with baseline pricing.
"""

from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from pixiedvc.db.readers.bookings import get_booking_for_rental
from pixiedvc.db.readers.matches import get_match
from pixiedvc.db.readers.memberships import get_membership_resort_id
from pixiedvc.db.readers.owners import resolve_owner_user_id
from pixiedvc.db.readers.rentals import get_rental_by_match
from pixiedvc.db.writers.bookings import apply_guest_pricing
from pixiedvc.db.writers.matches import update_match_payout
from pixiedvc.db.writers.rentals import insert_rental, seed_rental_milestones, update_rental
from pixiedvc.metrics import rentals_ensured
from pixiedvc.schemas.matching import OwnerPayout
from pixiedvc.schemas.rentals import EnsureRentalResult
from pixiedvc.services.pricing import compute_guest_rate_per_point, compute_owner_payout
from pixiedvc.services.promotions import DatabasePromotionPolicy, PromotionPolicy
from pixiedvc.services.rewards import (
    DatabaseRewardsPolicy,
    RewardsPolicy,
    apply_owner_bonus_with_margin,
    get_guest_perks_discount_pct,
    get_owner_preferred_bonus_cents,
    get_owner_preferred_tier,
)
from pixiedvc.utils.datetime import isoformat_or_none, utc_now

logger = structlog.get_logger(__name__)

MILESTONE_CODES = [
    "matched",
    "guest_verified",
    "payment_verified",
    "booking_package_sent",
    "agreement_sent",
    "owner_approved",
    "owner_booked",
    "check_in",
    "check_out",
]

INITIAL_RENTAL_STATUS = "needs_dvc_booking"

# Columns refreshed when a rental for the match already exists. Status,
# confirmation numbers and the booking_package snapshot belong to the rental
# once it is created.
RENTAL_REFRESH_COLUMNS = (
    "owner_id",
    "owner_user_id",
    "guest_id",
    "guest_user_id",
    "resort_code",
    "room_type",
    "check_in",
    "check_out",
    "points_required",
    "rental_amount_cents",
    "adults",
    "youths",
    "lead_guest_name",
    "lead_guest_email",
    "lead_guest_phone",
    "lead_guest_address",
)


class RentalPreconditionError(Exception):
    """Raised when upstream match/booking/owner state cannot back a rental."""

    def __init__(self, code: str, message: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message or code)


def resolve_resort_code(booking: dict[str, Any]) -> str:
    return booking.get("resort_calculator_code") or booking.get("resort_slug") or "TBD"


def build_lead_guest_address(booking: dict[str, Any]) -> dict[str, Optional[str]]:
    return {
        "line1": booking.get("address_line1"),
        "line2": booking.get("address_line2"),
        "city": booking.get("city"),
        "state": booking.get("state"),
        "postal": booking.get("postal_code"),
        "country": booking.get("country"),
    }


def build_booking_package(booking: dict[str, Any]) -> dict[str, Any]:
    """
    Snapshot the booking fields the rental screens display.

    Args:
        booking (dict): Row from get_booking_for_rental, with any guest
            pricing written by this call already merged in.

    Returns:
        dict[str, Any]: JSON-serializable snapshot stored in rentals.booking_package.
    """
    adults = booking.get("adults")
    youths = booking.get("youths")
    party_size = adults + youths if isinstance(adults, int) and isinstance(youths, int) else None

    return {
        "booking_request_id": str(booking["id"]),
        "resort_name": booking.get("resort_name"),
        "resort_slug": booking.get("resort_slug"),
        "resort_code": resolve_resort_code(booking),
        "room_type": booking.get("primary_room"),
        "room_view": booking.get("primary_view"),
        "check_in": isoformat_or_none(booking.get("check_in")),
        "check_out": isoformat_or_none(booking.get("check_out")),
        "nights": booking.get("nights"),
        "points_required": booking.get("total_points"),
        "lead_guest_name": booking.get("lead_guest_name"),
        "lead_guest_email": booking.get("lead_guest_email"),
        "lead_guest_phone": booking.get("lead_guest_phone"),
        "lead_guest_address": build_lead_guest_address(booking),
        "party_size": party_size,
        "adults": adults,
        "youths": youths,
        "requires_accessibility": bool(booking.get("requires_accessibility")),
        "comments": booking.get("comments"),
        "deposit_due": booking.get("deposit_due"),
        "deposit_paid": booking.get("deposit_paid"),
        "deposit_currency": booking.get("deposit_currency") or "USD",
        "max_price_per_point": booking.get("max_price_per_point"),
        "est_cash": booking.get("est_cash"),
        "guest_total_cents": booking.get("guest_total_cents"),
        "guest_rate_per_point_cents": booking.get("guest_rate_per_point_cents"),
    }


def build_initial_milestones(booking: dict[str, Any], now: datetime) -> list[dict[str, Any]]:
    """
    Build the milestone checklist for a new rental.

    matched and booking_package_sent start completed. guest_verified starts
    completed once the guest profile and agreement are both done, and
    payment_verified once a positive deposit is fully paid.
    """
    deposit_due = booking.get("deposit_due")
    deposit_paid = booking.get("deposit_paid")
    completed = {
        "matched": True,
        "guest_verified": bool(
            booking.get("guest_profile_complete_at") and booking.get("guest_agreement_accepted_at")
        ),
        "payment_verified": (
            deposit_due is not None
            and deposit_paid is not None
            and deposit_due > 0
            and deposit_paid >= deposit_due
        ),
        "booking_package_sent": True,
    }

    milestones = []
    for position, code in enumerate(MILESTONE_CODES, start=1):
        done = completed.get(code, False)
        milestones.append(
            {
                "code": code,
                "position": position,
                "status": "completed" if done else "pending",
                "occurred_at": now if done else None,
            }
        )
    return milestones


def _stored_payout(match: dict[str, Any]) -> Optional[OwnerPayout]:
    """Baseline payout stored on the match, with any applied bonus taken back out."""
    rate = match.get("owner_rate_per_point_cents")
    if rate is None:
        return None
    bonus = match.get("owner_bonus_per_point_cents") or 0
    points = match.get("points_reserved") or 0
    baseline_rate = rate - bonus
    return OwnerPayout(
        owner_base_rate_per_point_cents=match.get("owner_base_rate_per_point_cents") or 0,
        owner_premium_per_point_cents=match.get("owner_premium_per_point_cents") or 0,
        owner_rate_per_point_cents=baseline_rate,
        owner_total_cents=baseline_rate * points,
        owner_home_resort_premium_applied=bool(match.get("owner_home_resort_premium_applied")),
    )


def compute_baseline_payout(
    engine: Engine, match: dict[str, Any], booking: dict[str, Any]
) -> OwnerPayout:
    """
    Recompute the owner payout from the membership that actually fulfils the match.

    Falls back to the payout stored on the match when the membership cannot
    be looked up.
    """
    membership_resort_id = None
    lookup_failed = False
    try:
        if match.get("owner_membership_id") is not None:
            with engine.connect() as conn:
                membership_resort_id = get_membership_resort_id(conn, match["owner_membership_id"])
        lookup_failed = membership_resort_id is None
    except SQLAlchemyError as e:
        logger.exception("rental_membership_lookup_failed", match_id=match["id"], error=str(e))
        lookup_failed = True

    if lookup_failed:
        stored = _stored_payout(match)
        if stored is not None:
            return stored

    return compute_owner_payout(
        total_points=booking.get("total_points"),
        matched_membership_resort_id=membership_resort_id,
        booking_resort_id=booking.get("primary_resort_id"),
    )


def compute_guest_discount(
    guest_total_cents: int,
    owner_total_cents: int,
    total_points: int,
    discount_pct: int,
    guest_max_reward_per_point_cents: Optional[int] = None,
) -> Optional[dict[str, int]]:
    """
    Carve a guest perks discount out of the platform margin.

    Args:
        guest_total_cents: Guest price before any perks.
        owner_total_cents: Owner payout, left untouched.
        total_points: Points in the booking.
        discount_pct: Percentage of the margin given back to the guest.
        guest_max_reward_per_point_cents: Promotion cap on the per-point reward.

    Returns:
        Optional[dict[str, int]]: booking_requests pricing columns to write,
        or None when there is no positive discount to apply.
    """
    margin = guest_total_cents - owner_total_cents
    if discount_pct <= 0 or margin <= 0 or total_points <= 0:
        return None

    discount_cents = round(margin * discount_pct / 100)
    reward_per_point = round(discount_cents / total_points)
    if guest_max_reward_per_point_cents is not None and reward_per_point > guest_max_reward_per_point_cents:
        reward_per_point = max(guest_max_reward_per_point_cents, 0)
        discount_cents = reward_per_point * total_points

    if discount_cents <= 0:
        return None

    final_total = guest_total_cents - discount_cents
    return {
        "guest_total_cents": final_total,
        "guest_rate_per_point_cents": compute_guest_rate_per_point(total_points, final_total),
        "guest_total_cents_final": final_total,
        "guest_discount_cents": discount_cents,
        "guest_reward_per_point_cents": reward_per_point,
        "guest_perks_discount_pct": discount_pct,
    }


def _apply_guest_perks(
    engine: Engine,
    booking: dict[str, Any],
    baseline: OwnerPayout,
    promotion: Optional[dict[str, Any]],
    rewards: RewardsPolicy,
) -> int:
    """
    Apply the guest discount if it has not been applied yet.

    Returns:
        int: Guest reward per point now in effect for the booking (0 if none).
    """
    if booking.get("guest_total_cents_final") is not None:
        return booking.get("guest_reward_per_point_cents") or 0

    guest_total = booking.get("guest_total_cents")
    total_points = booking.get("total_points") or 0
    renter_id = booking["renter_id"]
    if guest_total is None or total_points <= 0:
        return 0

    if not rewards.is_guest_enrolled(renter_id):
        return 0

    completed = rewards.count_completed_guest_bookings(renter_id)
    discount_pct = get_guest_perks_discount_pct(completed)
    pricing = compute_guest_discount(
        guest_total_cents=guest_total,
        owner_total_cents=baseline.owner_total_cents,
        total_points=total_points,
        discount_pct=discount_pct,
        guest_max_reward_per_point_cents=(
            promotion.get("guest_max_reward_per_point_cents") if promotion else None
        ),
    )
    if pricing is None:
        return 0

    with engine.begin() as conn:
        applied = apply_guest_pricing(conn, str(booking["id"]), pricing)

    if not applied:
        logger.info("guest_discount_already_applied", booking_id=str(booking["id"]))
        return 0

    booking.update(pricing)
    logger.info(
        "guest_discount_applied",
        booking_id=str(booking["id"]),
        completed_bookings=completed,
        discount_pct=discount_pct,
        discount_cents=pricing["guest_discount_cents"],
    )
    return pricing["guest_reward_per_point_cents"]


def _pre_discount_guest_total(booking: dict[str, Any]) -> Optional[int]:
    guest_total = booking.get("guest_total_cents")
    if guest_total is None:
        return None
    if booking.get("guest_total_cents_final") is not None:
        return guest_total + (booking.get("guest_discount_cents") or 0)
    return guest_total


def _apply_owner_bonus(
    engine: Engine,
    match: dict[str, Any],
    booking: dict[str, Any],
    baseline: OwnerPayout,
    owner_user_id: str,
    guest_reward_per_point: int,
    promotion: Optional[dict[str, Any]],
    rewards: RewardsPolicy,
) -> OwnerPayout:
    """
    Apply the owner's preferred-tier bonus, capped by margin and promotion.

    Returns:
        OwnerPayout: The payout in effect after the bonus (baseline if none applies).
    """
    total_points = booking.get("total_points") or 0
    guest_total = _pre_discount_guest_total(booking)
    if guest_total is None or total_points <= 0:
        return baseline

    if not rewards.is_owner_enrolled(owner_user_id):
        return baseline

    lifetime_points = rewards.sum_owner_completed_points(owner_user_id)
    tier = get_owner_preferred_tier(lifetime_points)
    candidate = get_owner_preferred_bonus_cents(lifetime_points)
    if candidate <= 0:
        return baseline

    if promotion:
        owner_max = promotion.get("owner_max_bonus_per_point_cents") or 0
        min_spread = promotion.get("min_spread_per_point_cents") or 0
    else:
        owner_max = candidate
        min_spread = 0

    guest_rate = compute_guest_rate_per_point(total_points, guest_total) or 0
    spread_per_point = guest_rate - baseline.owner_rate_per_point_cents
    bonus = apply_owner_bonus_with_margin(
        owner_bonus_candidate_cents=candidate,
        owner_max_bonus_cents=owner_max,
        guest_reward_per_point_cents=guest_reward_per_point,
        spread_per_point_cents=spread_per_point,
        min_spread_per_point_cents=min_spread,
    )
    if bonus <= 0:
        logger.info("owner_bonus_capped_to_zero", match_id=match["id"], tier=tier)
        return baseline

    rate = baseline.owner_rate_per_point_cents + bonus
    payout = baseline.model_copy(
        update={"owner_rate_per_point_cents": rate, "owner_total_cents": rate * total_points}
    )

    with engine.begin() as conn:
        update_match_payout(
            conn,
            match["id"],
            {
                "owner_rate_per_point_cents": payout.owner_rate_per_point_cents,
                "owner_total_cents": payout.owner_total_cents,
                "owner_bonus_per_point_cents": bonus,
                "owner_rewards_tier": tier,
            },
        )

    logger.info(
        "owner_bonus_applied",
        match_id=match["id"],
        tier=tier,
        bonus_per_point_cents=bonus,
        owner_total_cents=payout.owner_total_cents,
    )
    return payout


def _settled_payout(match: dict[str, Any], baseline: OwnerPayout) -> OwnerPayout:
    """Payout already recorded on the match, including any owner bonus."""
    if match.get("owner_total_cents") is None:
        return baseline
    return baseline.model_copy(
        update={
            "owner_rate_per_point_cents": match.get("owner_rate_per_point_cents")
            or baseline.owner_rate_per_point_cents,
            "owner_total_cents": match["owner_total_cents"],
        }
    )


def _load_context(
    engine: Engine, match_id: str
) -> tuple[dict[str, Any], dict[str, Any], str, Optional[dict[str, Any]]]:
    with engine.connect() as conn:
        match = get_match(conn, match_id)
        if match is None:
            raise RentalPreconditionError("match_not_found")

        booking = get_booking_for_rental(conn, match["booking_id"])
        if booking is None:
            raise RentalPreconditionError("booking_not_found")

        if not booking.get("renter_id"):
            raise RentalPreconditionError(
                "renter_id_missing", f"renter_id_missing booking_id={booking['id']}"
            )

        owner_user_id = resolve_owner_user_id(conn, match["owner_id"])
        if not owner_user_id:
            raise RentalPreconditionError(
                "owner_user_id_missing",
                f"owner_user_id_missing owner_id={match['owner_id']} match_id={match_id}",
            )

        existing = get_rental_by_match(conn, match_id)

    return match, booking, str(owner_user_id), existing


def ensure_rental_for_match(
    engine: Engine,
    match_id: str,
    rewards: Optional[RewardsPolicy] = None,
    promotions: Optional[PromotionPolicy] = None,
    now: Optional[datetime] = None,
) -> EnsureRentalResult:
    """
    Create or refresh the rental backing an accepted match.

    Args:
        engine (Engine): SQLAlchemy engine.
        match_id (str): Booking match id.
        rewards (Optional[RewardsPolicy]): Loyalty lookups, defaults to the database.
        promotions (Optional[PromotionPolicy]): Promotion lookup, defaults to the database.
        now (Optional[datetime]): Reference time for milestones and promotions.

    Returns:
        EnsureRentalResult: rental id, check-in, owner user id and payout.

    Raises:
        RentalPreconditionError: If the match, its booking, the booking's
            renter, or the owner's user id cannot be resolved.
    """
    now = now or utc_now()
    rewards = rewards or DatabaseRewardsPolicy(engine)
    promotions = promotions or DatabasePromotionPolicy(engine)

    match, booking, owner_user_id, existing = _load_context(engine, match_id)
    baseline = compute_baseline_payout(engine, match, booking)

    promotion = None
    try:
        promotion = promotions.get_active_promotion(now)
    except Exception as e:
        logger.exception("rental_promotion_lookup_failed", match_id=match_id, error=str(e))

    guest_reward_per_point = 0
    try:
        guest_reward_per_point = _apply_guest_perks(engine, booking, baseline, promotion, rewards)
    except Exception as e:
        logger.exception("guest_perks_failed", match_id=match_id, error=str(e))

    # The owner bonus is settled when the rental is created. Later calls reuse
    # the payout stored on the match.
    if existing is not None:
        payout = _settled_payout(match, baseline)
    else:
        payout = baseline
        try:
            payout = _apply_owner_bonus(
                engine,
                match,
                booking,
                baseline,
                owner_user_id,
                guest_reward_per_point,
                promotion,
                rewards,
            )
        except Exception as e:
            logger.exception("owner_bonus_failed", match_id=match_id, error=str(e))

    booking_package = build_booking_package(booking)
    rental_values = {
        "match_id": match_id,
        "owner_id": match["owner_id"],
        "owner_user_id": owner_user_id,
        "guest_id": booking["renter_id"],
        "guest_user_id": booking["renter_id"],
        "resort_code": booking_package["resort_code"],
        "room_type": booking.get("primary_room"),
        "check_in": booking.get("check_in"),
        "check_out": booking.get("check_out"),
        "points_required": booking.get("total_points"),
        "rental_amount_cents": payout.owner_total_cents if payout.owner_total_cents > 0 else None,
        "status": INITIAL_RENTAL_STATUS,
        "booking_package": booking_package,
        "adults": booking.get("adults"),
        "youths": booking.get("youths"),
        "dvc_confirmation_number": None,
        "disney_confirmation_number": None,
        "lead_guest_name": booking.get("lead_guest_name"),
        "lead_guest_email": booking.get("lead_guest_email"),
        "lead_guest_phone": booking.get("lead_guest_phone"),
        "lead_guest_address": booking_package["lead_guest_address"],
    }

    with engine.begin() as conn:
        rental_id = insert_rental(conn, rental_values) if existing is None else None
        if rental_id:
            seed_rental_milestones(conn, rental_id, build_initial_milestones(booking, now))
            outcome = "created"
        else:
            existing = get_rental_by_match(conn, match_id)
            if existing is None:
                raise RentalPreconditionError("rental_create_failed")
            update_rental(
                conn,
                str(existing["id"]),
                {column: rental_values[column] for column in RENTAL_REFRESH_COLUMNS},
            )
            outcome = "updated"

        rental = get_rental_by_match(conn, match_id)

    if rental is None:
        raise RentalPreconditionError("rental_create_failed")

    rentals_ensured.labels(outcome=outcome).inc()
    logger.info(f"rental_{outcome}", match_id=match_id, rental_id=str(rental["id"]))

    return EnsureRentalResult(
        rental_id=str(rental["id"]),
        check_in=rental.get("check_in"),
        owner_user_id=str(rental["owner_user_id"]),
        rental_amount_cents=rental.get("rental_amount_cents"),
    )
