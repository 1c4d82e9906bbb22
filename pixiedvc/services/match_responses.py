"""
Owner responses to a pending match, and expiry of unanswered matches.

Every transition out of pending_owner is guarded by the current status in
the UPDATE itself, so an accept racing an expiry resolves to one winner.
"""

from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from pixiedvc.db.readers.matches import get_expired_pending_match_ids, get_match
from pixiedvc.db.readers.owners import resolve_owner_user_id
from pixiedvc.db.writers.bookings import update_booking_status
from pixiedvc.db.writers.matches import mark_match_accepted, release_match
from pixiedvc.metrics import matches_released
from pixiedvc.schemas.rentals import MatchResponseResult
from pixiedvc.services.promotions import PromotionPolicy
from pixiedvc.services.rentals import ensure_rental_for_match
from pixiedvc.services.rewards import RewardsPolicy
from pixiedvc.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


class MatchResponseError(Exception):
    """
    Raised when an owner response cannot be applied.

    code is one of match_not_found, owner_mismatch, match_expired or
    invalid_status.
    """

    def __init__(self, code: str, match_id: str, status: Optional[str] = None) -> None:
        self.code = code
        self.match_id = match_id
        self.status = status
        super().__init__(f"{code} match_id={match_id} status={status}")


def _is_expired(match: dict[str, Any], now: datetime) -> bool:
    expires_at = match.get("expires_at")
    return expires_at is not None and expires_at <= now


def _load_match_for_owner(engine: Engine, match_id: str, owner_id: Optional[str]) -> dict[str, Any]:
    with engine.connect() as conn:
        match = get_match(conn, match_id)
        if match is None:
            raise MatchResponseError("match_not_found", match_id)

        # owner_id may be either owners.id or the owner's profile user id
        if owner_id and owner_id != str(match["owner_id"]):
            if resolve_owner_user_id(conn, str(match["owner_id"])) != owner_id:
                raise MatchResponseError("owner_mismatch", match_id, match.get("status"))

    return match


def _expire(engine: Engine, match_id: str, now: datetime) -> bool:
    released = release_match(engine, match_id, status="expired", now=now)
    if released:
        matches_released.labels(status="expired").inc()
    return released


def accept_match(
    engine: Engine,
    match_id: str,
    owner_id: Optional[str] = None,
    now: Optional[datetime] = None,
    rewards: Optional[RewardsPolicy] = None,
    promotions: Optional[PromotionPolicy] = None,
) -> MatchResponseResult:
    """
    Accept a pending match and materialize its rental.

    An already accepted match is accepted again without side effects beyond
    refreshing the rental. A pending match past its expires_at is released
    instead.

    Args:
        engine (Engine): SQLAlchemy engine.
        match_id (str): Booking match id.
        owner_id (Optional[str]): Responding owner, checked against the match.
        now (Optional[datetime]): Reference time.
        rewards (Optional[RewardsPolicy]): Passed through to ensure_rental_for_match.
        promotions (Optional[PromotionPolicy]): Passed through to ensure_rental_for_match.

    Returns:
        MatchResponseResult: status "accepted" and the rental summary.

    Raises:
        MatchResponseError: If the match is unknown, belongs to another owner,
            has expired, or is in a status that cannot be accepted.
        RentalPreconditionError: If the rental cannot be materialized.
    """
    now = now or utc_now()
    match = _load_match_for_owner(engine, match_id, owner_id)
    status = match.get("status")

    if status == "pending_owner":
        if _is_expired(match, now):
            _expire(engine, match_id, now)
            raise MatchResponseError("match_expired", match_id, status)

        with engine.begin() as conn:
            accepted = mark_match_accepted(conn, match_id, now)

        if not accepted:
            with engine.connect() as conn:
                current = get_match(conn, match_id) or {}
            status = current.get("status")
            if status == "expired":
                raise MatchResponseError("match_expired", match_id, status)
            if status != "accepted":
                raise MatchResponseError("invalid_status", match_id, status)
        else:
            logger.info("match_accepted", match_id=match_id)
    elif status == "expired":
        raise MatchResponseError("match_expired", match_id, status)
    elif status != "accepted":
        raise MatchResponseError("invalid_status", match_id, status)

    rental = ensure_rental_for_match(
        engine, match_id, rewards=rewards, promotions=promotions, now=now
    )

    with engine.begin() as conn:
        update_booking_status(conn, str(match["booking_id"]), "matched", ("pending_owner",))

    return MatchResponseResult(match_id=match_id, status="accepted", rental=rental)


def decline_match(
    engine: Engine,
    match_id: str,
    owner_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MatchResponseResult:
    """
    Decline a pending match, returning its points and the booking to the pool.

    Raises:
        MatchResponseError: If the match is unknown, belongs to another owner,
            has expired, or is no longer pending.
    """
    now = now or utc_now()
    match = _load_match_for_owner(engine, match_id, owner_id)
    status = match.get("status")

    if status == "declined":
        return MatchResponseResult(match_id=match_id, status="declined")
    if status == "expired":
        raise MatchResponseError("match_expired", match_id, status)
    if status != "pending_owner":
        raise MatchResponseError("invalid_status", match_id, status)

    if _is_expired(match, now):
        _expire(engine, match_id, now)
        raise MatchResponseError("match_expired", match_id, status)

    if not release_match(engine, match_id, status="declined", now=now):
        raise MatchResponseError("invalid_status", match_id, status)

    matches_released.labels(status="declined").inc()
    logger.info("match_declined", match_id=match_id)
    return MatchResponseResult(match_id=match_id, status="declined")


def expire_stale_matches(engine: Engine, now: Optional[datetime] = None) -> int:
    """
    Release every pending_owner match whose expires_at has passed.

    Args:
        engine (Engine): SQLAlchemy engine.
        now (Optional[datetime]): Reference time.

    Returns:
        int: Number of matches expired by this call.
    """
    now = now or utc_now()

    with engine.connect() as conn:
        match_ids = get_expired_pending_match_ids(conn, now)

    expired = 0
    for match_id in match_ids:
        try:
            if _expire(engine, str(match_id), now):
                expired += 1
        except Exception as e:
            logger.exception("match_expire_failed", match_id=str(match_id), error=str(e))

    logger.info("stale_matches_expired", found=len(match_ids), expired=expired)
    return expired
