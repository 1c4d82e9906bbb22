"""
Match persistence: the atomic apply transaction and the release path.

apply_booking_match is the only code path that increments
owner_memberships.points_reserved; release_match is the only one that
decrements it. Both run in a single transaction.
"""

from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.engine import Connection, Engine

from pixiedvc.models.bookings import BookingRequest
from pixiedvc.models.matches import BookingMatch
from pixiedvc.models.memberships import OwnerMembership
from pixiedvc.schemas.matching import MatchPlan
from pixiedvc.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


class MatchApplyError(Exception):
    """Raised inside the apply transaction when a precondition no longer holds."""


def _reserve_points(conn: Connection, membership_id: int, points: int) -> None:
    """
    Reserve points on a membership only if its usable balance still covers them.

    Raises:
        MatchApplyError: If the membership is gone or its balance is short.
    """
    if points <= 0:
        return

    stmt = (
        update(OwnerMembership)
        .where(OwnerMembership.id == membership_id)
        .where(OwnerMembership.points_available - OwnerMembership.points_reserved >= points)
        .values(
            points_reserved=OwnerMembership.points_reserved + points,
            updated_at=func.now(),
        )
        .returning(OwnerMembership.id)
    )
    if conn.execute(stmt).fetchone() is None:
        raise MatchApplyError(f"insufficient_points on membership {membership_id}")


def _release_points(conn: Connection, membership_id: Optional[int], points: int) -> None:
    if membership_id is None or points <= 0:
        return

    conn.execute(
        update(OwnerMembership)
        .where(OwnerMembership.id == membership_id)
        .values(
            points_reserved=func.greatest(OwnerMembership.points_reserved - points, 0),
            updated_at=func.now(),
        )
    )


def apply_booking_match(engine: Engine, plan: MatchPlan) -> str:
    """
    Persist a match plan atomically.

    In one transaction: lock the booking row and confirm it is still
    submitted with no outstanding pending_owner match, reserve points on the
    chosen membership (and on the borrow membership when borrowing), insert
    the booking_matches row, and move the booking to pending_owner. Any
    failure rolls back every step.

    Args:
        engine (Engine): SQLAlchemy engine.
        plan (MatchPlan): Selected candidate and payout for one booking.

    Returns:
        str: The new booking_matches id.

    Raises:
        MatchApplyError: If the booking or the point balances changed since
            evaluation.
    """
    with engine.begin() as conn:
        booking = conn.execute(
            select(BookingRequest.id, BookingRequest.status)
            .where(BookingRequest.id == plan.booking_id)
            .with_for_update()
        ).fetchone()

        if booking is None:
            raise MatchApplyError("booking_not_found")
        if booking.status != "submitted":
            raise MatchApplyError(f"booking_status_changed: {booking.status}")

        pending = conn.execute(
            select(BookingMatch.id)
            .where(BookingMatch.booking_id == plan.booking_id)
            .where(BookingMatch.status == "pending_owner")
            .limit(1)
        ).fetchone()
        if pending is not None:
            raise MatchApplyError("already_pending_owner")

        _reserve_points(conn, plan.owner_membership_id, plan.points_reserved_current)
        if plan.points_reserved_borrowed > 0:
            if plan.borrow_membership_id is None:
                raise MatchApplyError("missing_borrow_membership")
            _reserve_points(conn, plan.borrow_membership_id, plan.points_reserved_borrowed)

        payout = plan.owner_payout
        match_id = conn.execute(
            BookingMatch.__table__.insert()
            .values(
                booking_id=plan.booking_id,
                owner_id=plan.owner_id,
                owner_membership_id=plan.owner_membership_id,
                borrow_membership_id=plan.borrow_membership_id,
                status="pending_owner",
                points_reserved=plan.points_reserved,
                points_reserved_current=plan.points_reserved_current,
                points_reserved_borrowed=plan.points_reserved_borrowed,
                expires_at=plan.expires_at,
                owner_base_rate_per_point_cents=payout.owner_base_rate_per_point_cents,
                owner_premium_per_point_cents=payout.owner_premium_per_point_cents,
                owner_rate_per_point_cents=payout.owner_rate_per_point_cents,
                owner_total_cents=payout.owner_total_cents,
                owner_home_resort_premium_applied=payout.owner_home_resort_premium_applied,
            )
            .returning(BookingMatch.id)
        ).scalar_one()

        conn.execute(
            update(BookingRequest)
            .where(BookingRequest.id == plan.booking_id)
            .values(status="pending_owner", updated_at=func.now())
        )

    logger.info(
        "match_applied",
        booking_id=plan.booking_id,
        match_id=match_id,
        owner_membership_id=plan.owner_membership_id,
        points_reserved=plan.points_reserved,
    )
    return str(match_id)


def release_match(engine: Engine, match_id: str, status: str, now: Optional[datetime] = None) -> bool:
    """
    Close a pending_owner match and hand its points and booking back.

    The status transition is guarded by status = 'pending_owner', so two
    concurrent releases (or a release racing an accept) cannot both win.

    Args:
        engine (Engine): SQLAlchemy engine.
        match_id (str): Booking match id.
        status (str): Terminal status to record ("expired" or "declined").
        now (Optional[datetime]): responded_at timestamp.

    Returns:
        bool: True if this call released the match, False if it was no longer
        pending.
    """
    now = now or utc_now()

    with engine.begin() as conn:
        released = conn.execute(
            update(BookingMatch)
            .where(BookingMatch.id == match_id)
            .where(BookingMatch.status == "pending_owner")
            .values(status=status, responded_at=now)
            .returning(
                BookingMatch.booking_id,
                BookingMatch.owner_membership_id,
                BookingMatch.borrow_membership_id,
                BookingMatch.points_reserved_current,
                BookingMatch.points_reserved_borrowed,
            )
        ).fetchone()

        if released is None:
            return False

        _release_points(conn, released.owner_membership_id, released.points_reserved_current or 0)
        _release_points(
            conn, released.borrow_membership_id, released.points_reserved_borrowed or 0
        )

        conn.execute(
            update(BookingRequest)
            .where(BookingRequest.id == released.booking_id)
            .where(BookingRequest.status == "pending_owner")
            .values(status="submitted", updated_at=func.now())
        )

    logger.info("match_released", match_id=match_id, status=status)
    return True


def mark_match_accepted(conn: Connection, match_id: str, now: datetime) -> bool:
    """
    Move a pending_owner match to accepted.

    Args:
        conn (Connection): SQLAlchemy DB connection (inside a transaction).
        match_id (str): Booking match id.
        now (datetime): responded_at timestamp.

    Returns:
        bool: True if the match was pending and is now accepted.
    """
    row = conn.execute(
        update(BookingMatch)
        .where(BookingMatch.id == match_id)
        .where(BookingMatch.status == "pending_owner")
        .values(status="accepted", responded_at=now)
        .returning(BookingMatch.id)
    ).fetchone()
    return row is not None


def update_match_payout(conn: Connection, match_id: str, data: dict[str, Any]) -> None:
    """
    Update owner payout fields on a match after an owner bonus is applied.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        match_id (str): Booking match id.
        data (dict): owner_rate_per_point_cents, owner_total_cents,
            owner_bonus_per_point_cents, owner_rewards_tier.
    """
    conn.execute(update(BookingMatch).where(BookingMatch.id == match_id).values(**data))
