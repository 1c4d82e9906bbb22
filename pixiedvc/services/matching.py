"""
Booking-to-owner matching.

evaluate_match_bookings picks the best owner membership for each submitted
booking and explains every rejection; run_match_bookings persists the
selected plans through the atomic apply transaction and notifies owners.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from pixiedvc.db.readers.bookings import load_bookings_for_matching
from pixiedvc.db.readers.memberships import (
    MAX_CANDIDATE_MEMBERSHIPS,
    get_candidate_memberships,
)
from pixiedvc.db.readers.owners import get_owner_verification_statuses
from pixiedvc.db.writers.matches import MatchApplyError, apply_booking_match
from pixiedvc.metrics import (
    bookings_evaluated,
    match_apply_failures,
    match_run_duration,
    match_runs,
    matches_created,
    owner_emails,
)
from pixiedvc.schemas.matching import (
    CandidateEvaluation,
    EvaluatedBooking,
    MatchEvaluation,
    MatchPlan,
    MatchResult,
    MatchRunError,
    MatchRunResult,
)
from pixiedvc.services.email import send_owner_match_email
from pixiedvc.services.pricing import compute_owner_payout
from pixiedvc.utils.datetime import as_date, isoformat_or_none, utc_now

logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 50
MATCH_EXPIRY = timedelta(hours=1)
MATCHABLE_STATUSES = ("submitted",)
DEFAULT_OWNER_NAME = "PixieDVC Owner"

# Skip reasons that make a booking ineligible. already_pending_owner also
# skips the booking but does not affect eligibility.
BASELINE_INELIGIBLE_REASONS = {
    "booking_status_not_submitted",
    "missing_primary_resort_id",
    "missing_total_points",
    "missing_dates",
}


def clamp_match_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return min(max(int(limit), 1), MAX_LIMIT)


def parse_match_limit(value: Optional[str]) -> int:
    """
    Parse a raw limit query value into a batch size in [1, 50].

    Missing or non-numeric values fall back to the default of 20.

    Example:
        >>> parse_match_limit("500")
        50
    """
    if value is None or value == "":
        return DEFAULT_LIMIT
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if not math.isfinite(parsed):
        return DEFAULT_LIMIT
    return clamp_match_limit(math.floor(parsed))


def _deposit_ok(booking: dict[str, Any]) -> bool:
    due = booking.get("deposit_due")
    paid = booking.get("deposit_paid")
    if due is None or paid is None:
        return False
    return paid >= due


def _usable_points(membership: dict[str, Any]) -> int:
    available = membership.get("points_available") or 0
    reserved = membership.get("points_reserved") or 0
    return max(available - reserved, 0)


def _membership_key(owner_id: Any, resort_id: Any, contract_year: Any) -> str:
    return f"{owner_id}:{resort_id}:{contract_year}"


def resolve_payout_email(membership: dict[str, Any]) -> Optional[str]:
    """Profile payout email, then owner payout email, then profile login email."""
    return (
        membership.get("profile_payout_email")
        or membership.get("owner_payout_email")
        or membership.get("profile_email")
        or None
    )


def baseline_skip_reasons(booking: dict[str, Any]) -> list[str]:
    """
    Return the reasons a booking cannot be matched before any candidate is loaded.

    Args:
        booking (dict): Row from load_bookings_for_matching.

    Returns:
        list[str]: Skip reason codes, in check order.
    """
    reasons = []
    if booking.get("status") not in MATCHABLE_STATUSES:
        reasons.append("booking_status_not_submitted")
    if not booking.get("primary_resort_id"):
        reasons.append("missing_primary_resort_id")
    total_points = booking.get("total_points")
    if not total_points or total_points <= 0:
        reasons.append("missing_total_points")
    if not booking.get("check_in") or not booking.get("check_out"):
        reasons.append("missing_dates")
    if booking.get("has_pending_owner_match"):
        reasons.append("already_pending_owner")
    return reasons


def score_candidate(current_available: int, total_points: int, total_usable: int) -> int:
    """
    Score a passing candidate. Higher is better.

    A membership that covers the booking from its own balance scores
    1000 minus the leftover, so the tightest fit wins. A membership that
    must borrow scores 600 minus twice the borrowed points minus the
    leftover across both years.
    """
    if current_available >= total_points:
        return 1000 - (current_available - total_points)
    reserve_borrowed = total_points - current_available
    leftover = total_usable - total_points
    return 600 - reserve_borrowed * 2 - leftover


def select_best_candidate(
    booking: dict[str, Any],
    memberships: list[dict[str, Any]],
    verification_statuses: dict[str, Optional[str]],
) -> tuple[list[CandidateEvaluation], dict[str, int], Optional[dict[str, Any]]]:
    """
    Evaluate every candidate membership for a booking and pick the best one.

    Every failing check is recorded on the candidate, not only the first.
    Ties go to the candidate seen first.

    Args:
        booking (dict): Booking row that passed the baseline checks.
        memberships (list[dict]): Candidate membership rows, in load order.
        verification_statuses (dict): owner_id -> owner_verifications.status.

    Returns:
        tuple: (candidate audit records, first-reason rejection counts,
        selection dict or None). The selection holds membership,
        next_membership, current_available, reserve_current, reserve_borrowed
        and score.
    """
    total_points: int = booking["total_points"]
    check_in = as_date(booking.get("check_in"))
    check_out = as_date(booking.get("check_out"))

    by_contract_year = {
        _membership_key(m["owner_id"], m["resort_id"], m.get("contract_year")): m
        for m in memberships
    }

    candidates: list[CandidateEvaluation] = []
    rejection_counts: dict[str, int] = {}
    best: Optional[dict[str, Any]] = None

    for membership in memberships:
        reject_reasons = []

        verification_status = verification_statuses.get(membership["owner_id"])
        owner_verified = (
            verification_status == "approved"
            or membership.get("owner_verification") == "verified"
        )
        if not owner_verified:
            reject_reasons.append("owner_not_verified")

        if not resolve_payout_email(membership):
            reject_reasons.append("owner_missing_email")

        contract_year = membership.get("contract_year")
        if contract_year is not None and check_in and contract_year != check_in.year:
            reject_reasons.append("contract_year_mismatch")

        use_year_start = as_date(membership.get("use_year_start"))
        use_year_end = as_date(membership.get("use_year_end"))
        if use_year_start and use_year_end and check_in and check_out:
            if check_in < use_year_start or check_out > use_year_end:
                reject_reasons.append("stay_outside_use_year")

        current_available = _usable_points(membership)
        next_membership = None
        borrowable = 0
        if membership.get("borrowing_enabled") and contract_year is not None:
            next_membership = by_contract_year.get(
                _membership_key(membership["owner_id"], membership["resort_id"], contract_year + 1)
            )
            if next_membership is not None:
                max_borrow = max(membership.get("max_points_to_borrow") or 0, 0)
                borrowable = min(max_borrow, _usable_points(next_membership))

        total_usable = current_available + borrowable
        points_ok = total_usable >= total_points
        if not points_ok:
            reject_reasons.append("insufficient_points")

        score = None
        if not reject_reasons:
            score = score_candidate(current_available, total_points, total_usable)

        candidates.append(
            CandidateEvaluation(
                membership_id=membership["id"],
                owner_id=str(membership["owner_id"]),
                resort_id=str(membership["resort_id"]),
                home_resort=membership.get("home_resort"),
                contract_year=contract_year,
                use_year_start=isoformat_or_none(membership.get("use_year_start")),
                use_year_end=isoformat_or_none(membership.get("use_year_end")),
                points_available=current_available,
                points_reserved=membership.get("points_reserved") or 0,
                points_borrowable=borrowable,
                points_ok=points_ok,
                score=score,
                reject_reasons=reject_reasons,
            )
        )

        if reject_reasons:
            primary_reason = reject_reasons[0]
            rejection_counts[primary_reason] = rejection_counts.get(primary_reason, 0) + 1
            continue

        if best is None or score > best["score"]:
            reserve_current = min(current_available, total_points)
            best = {
                "membership": membership,
                "next_membership": next_membership,
                "current_available": current_available,
                "reserve_current": reserve_current,
                "reserve_borrowed": total_points - reserve_current,
                "score": score,
            }

    return candidates, rejection_counts, best


def build_match_plan(booking: dict[str, Any], selection: dict[str, Any], now: datetime) -> MatchPlan:
    """Turn a selected candidate into a plan for the apply transaction."""
    membership = selection["membership"]
    reserve_borrowed = selection["reserve_borrowed"]
    borrow_membership_id = None
    if reserve_borrowed > 0 and selection["next_membership"] is not None:
        borrow_membership_id = selection["next_membership"]["id"]

    payout = compute_owner_payout(
        total_points=booking["total_points"],
        matched_membership_resort_id=str(membership["resort_id"]),
        booking_resort_id=str(booking["primary_resort_id"]),
    )

    return MatchPlan(
        booking_id=str(booking["id"]),
        owner_id=str(membership["owner_id"]),
        owner_membership_id=membership["id"],
        borrow_membership_id=borrow_membership_id,
        owner_email=resolve_payout_email(membership) or "",
        owner_name=membership.get("profile_display_name") or DEFAULT_OWNER_NAME,
        points_reserved=booking["total_points"],
        points_reserved_current=selection["reserve_current"],
        points_reserved_borrowed=reserve_borrowed,
        expires_at=now + MATCH_EXPIRY,
        owner_payout=payout,
        booking=booking,
    )


def _evaluate_booking(
    engine: Engine,
    booking: dict[str, Any],
    evaluated: EvaluatedBooking,
    errors: list[MatchRunError],
    now: datetime,
) -> Optional[MatchPlan]:
    """
    Load candidates for one booking that passed the baseline checks.

    Uses its own connection so a failed query cannot affect other bookings.
    Mutates evaluated in place and appends to errors.
    """
    booking_id = evaluated.booking_id

    try:
        with engine.connect() as conn:
            memberships = get_candidate_memberships(
                conn,
                resort_id=booking["primary_resort_id"],
                resort_code=booking.get("resort_calculator_code"),
                limit=MAX_CANDIDATE_MEMBERSHIPS,
            )
    except SQLAlchemyError as e:
        logger.exception("matcher_load_memberships_failed", booking_id=booking_id)
        errors.append(MatchRunError(booking_id=booking_id, step="load_memberships", message=str(e)))
        evaluated.skip_reasons.append("membership_query_failed")
        return None

    evaluated.candidates_found = len(memberships)
    if not memberships:
        evaluated.skip_reasons.append("no_membership_for_resort")
        return None

    owner_ids = sorted({str(m["owner_id"]) for m in memberships})
    verification_statuses: dict[str, Optional[str]] = {}
    try:
        with engine.connect() as conn:
            verification_statuses = get_owner_verification_statuses(conn, owner_ids)
    except SQLAlchemyError as e:
        logger.exception("matcher_load_owner_verifications_failed", booking_id=booking_id)
        errors.append(
            MatchRunError(booking_id=booking_id, step="load_owner_verifications", message=str(e))
        )

    candidates, rejection_counts, selection = select_best_candidate(
        booking, memberships, verification_statuses
    )
    evaluated.candidates_evaluated = candidates

    if selection is None:
        evaluated.skip_reasons.append("no_eligible_candidates")
        evaluated.candidate_rejection_counts = rejection_counts or None
        return None

    plan = build_match_plan(booking, selection, now)
    evaluated.final_decision = "matched"

    logger.info(
        "matcher_selected_owner",
        booking_id=booking_id,
        owner_id=plan.owner_id,
        owner_membership_id=plan.owner_membership_id,
        score=selection["score"],
        points_reserved_current=plan.points_reserved_current,
        points_reserved_borrowed=plan.points_reserved_borrowed,
    )
    return plan


def evaluate_match_bookings(
    engine: Engine,
    booking_id: Optional[str] = None,
    limit: Optional[int] = DEFAULT_LIMIT,
    now: Optional[datetime] = None,
) -> MatchEvaluation:
    """
    Evaluate submitted bookings against owner memberships without writing anything.

    Bookings are processed one at a time, newest first. Data-load failures
    are recorded in errors and never abort the batch.

    Args:
        engine (Engine): SQLAlchemy engine.
        booking_id (Optional[str]): Evaluate only this booking, whatever its status.
        limit (Optional[int]): Batch size, clamped to [1, 50].
        now (Optional[datetime]): Reference time for match expiry.

    Returns:
        MatchEvaluation: eligible booking ids, per-booking audit trail, match
        plans ready to apply, and errors.
    """
    now = now or utc_now()
    evaluation = MatchEvaluation()

    try:
        with engine.connect() as conn:
            bookings = load_bookings_for_matching(
                conn, booking_id, clamp_match_limit(limit), MATCHABLE_STATUSES
            )
    except SQLAlchemyError as e:
        logger.exception("matcher_load_bookings_failed", booking_id=booking_id)
        evaluation.errors.append(
            MatchRunError(booking_id=booking_id or "all", step="load_bookings", message=str(e))
        )
        return evaluation

    for booking in bookings:
        skip_reasons = baseline_skip_reasons(booking)
        if not BASELINE_INELIGIBLE_REASONS.intersection(skip_reasons):
            evaluation.eligible_bookings.append(str(booking["id"]))

        evaluated = EvaluatedBooking(
            booking_id=str(booking["id"]),
            status=booking.get("status"),
            required_resort_id=booking.get("primary_resort_id"),
            total_points=booking.get("total_points"),
            deposit_ok=_deposit_ok(booking),
            skip_reasons=skip_reasons,
        )

        if not skip_reasons:
            plan = _evaluate_booking(engine, booking, evaluated, evaluation.errors, now)
            if plan is not None:
                evaluation.match_plans.append(plan)

        bookings_evaluated.labels(decision=evaluated.final_decision).inc()
        evaluation.evaluated_bookings.append(evaluated)

    return evaluation


def _notify_owner(plan: MatchPlan, match_id: str, origin: str) -> None:
    booking = plan.booking
    try:
        send_owner_match_email(
            to=plan.owner_email,
            owner_name=plan.owner_name,
            resort_name=booking.get("resort_name") or "your DVC resort",
            check_in=isoformat_or_none(booking.get("check_in")),
            check_out=isoformat_or_none(booking.get("check_out")),
            total_points=booking.get("total_points"),
            lead_guest_name=booking.get("lead_guest_name"),
            lead_guest_email=booking.get("lead_guest_email"),
            accept_url=f"{origin}/api/matches/owner/accept?matchId={match_id}",
            decline_url=f"{origin}/api/matches/owner/decline?matchId={match_id}",
        )
    except Exception as e:
        owner_emails.labels(status="failed").inc()
        logger.exception(
            "owner_match_email_failed",
            booking_id=plan.booking_id,
            match_id=match_id,
            error=str(e),
        )


def _mark_apply_failed(evaluated_bookings: list[EvaluatedBooking], booking_id: str) -> None:
    for index, evaluated in enumerate(evaluated_bookings):
        if evaluated.booking_id != booking_id:
            continue
        skip_reasons = list(evaluated.skip_reasons)
        if "match_apply_failed" not in skip_reasons:
            skip_reasons.append("match_apply_failed")
        evaluated_bookings[index] = evaluated.model_copy(
            update={"final_decision": "skipped", "skip_reasons": skip_reasons}
        )
        return


def run_match_bookings(
    engine: Engine,
    origin: str,
    dry_run: bool = False,
    booking_id: Optional[str] = None,
    limit: Optional[int] = DEFAULT_LIMIT,
    now: Optional[datetime] = None,
    send_emails: bool = True,
) -> MatchRunResult:
    """
    Evaluate bookings and, unless dry_run, persist each match plan.

    Each plan is applied in its own transaction. A failed apply marks that
    booking skipped with match_apply_failed and the run moves on. Owner
    emails are best effort.

    Args:
        engine (Engine): SQLAlchemy engine.
        origin (str): Public app origin for accept/decline links.
        dry_run (bool): Evaluate only.
        booking_id (Optional[str]): Restrict to one booking.
        limit (Optional[int]): Batch size, clamped to [1, 50].
        now (Optional[datetime]): Reference time.
        send_emails (bool): Notify matched owners.

    Returns:
        MatchRunResult: ok is True only when no errors were recorded.
    """
    now = now or utc_now()
    origin = origin.rstrip("/")
    match_runs.labels(dry_run=str(dry_run).lower()).inc()

    with match_run_duration.time():
        evaluation = evaluate_match_bookings(engine, booking_id=booking_id, limit=limit, now=now)

        errors = list(evaluation.errors)
        evaluated_bookings = list(evaluation.evaluated_bookings)
        match_ids: list[str] = []
        match_results: list[MatchResult] = []

        for evaluated in evaluated_bookings:
            if evaluated.final_decision == "skipped":
                logger.info(
                    "matcher_skip_booking",
                    booking_id=evaluated.booking_id,
                    reasons=evaluated.skip_reasons,
                )

        if not dry_run:
            for plan in evaluation.match_plans:
                try:
                    match_id = apply_booking_match(engine, plan)
                except (MatchApplyError, SQLAlchemyError) as e:
                    logger.warning(
                        "match_apply_failed",
                        booking_id=plan.booking_id,
                        error=str(e),
                    )
                    match_apply_failures.inc()
                    errors.append(
                        MatchRunError(
                            booking_id=plan.booking_id,
                            step="create_match",
                            message=str(e) or "Failed to create match",
                            details=type(e).__name__,
                        )
                    )
                    _mark_apply_failed(evaluated_bookings, plan.booking_id)
                    continue

                if not match_id:
                    match_apply_failures.inc()
                    errors.append(
                        MatchRunError(
                            booking_id=plan.booking_id,
                            step="create_match",
                            message="Failed to create match",
                        )
                    )
                    _mark_apply_failed(evaluated_bookings, plan.booking_id)
                    continue

                matches_created.inc()
                match_ids.append(match_id)
                match_results.append(MatchResult(booking_id=plan.booking_id, match_id=match_id))
                logger.info("match_created", booking_id=plan.booking_id, match_id=match_id)

                if send_emails and plan.owner_email:
                    _notify_owner(plan, match_id, origin)

    result = MatchRunResult(
        ok=not errors,
        matches_created=len(match_ids),
        match_ids=match_ids,
        match_results=match_results,
        dry_run=dry_run,
        eligible_bookings=evaluation.eligible_bookings,
        evaluated_bookings=evaluated_bookings,
        errors=errors,
    )

    logger.info(
        "match_run_completed",
        dry_run=dry_run,
        eligible=len(result.eligible_bookings),
        evaluated=len(result.evaluated_bookings),
        matches_created=result.matches_created,
        errors=len(result.errors),
    )
    return result
