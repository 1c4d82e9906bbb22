from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class OwnerPayout(BaseModel):
    """Owner payout split for a matched booking, all amounts in cents."""

    owner_base_rate_per_point_cents: int
    owner_premium_per_point_cents: int
    owner_rate_per_point_cents: int
    owner_total_cents: int
    owner_home_resort_premium_applied: bool


class CandidateEvaluation(BaseModel):
    """
    Audit record for one owner membership considered for a booking.

    reject_reasons lists every failed check, not only the first one.
    """

    membership_id: int
    owner_id: str
    resort_id: str
    home_resort: Optional[str] = None
    contract_year: Optional[int] = None
    use_year_start: Optional[str] = None
    use_year_end: Optional[str] = None
    points_available: int
    points_reserved: int
    points_borrowable: int = 0
    points_ok: bool
    score: Optional[int] = None
    reject_reasons: list[str] = Field(default_factory=list)


class EvaluatedBooking(BaseModel):
    """Per-booking outcome of an evaluation pass, including every candidate."""

    booking_id: str
    status: Optional[str] = None
    required_resort_id: Optional[str] = None
    total_points: Optional[int] = None
    deposit_ok: bool = False
    candidates_found: int = 0
    candidates_evaluated: list[CandidateEvaluation] = Field(default_factory=list)
    candidate_rejection_counts: Optional[dict[str, int]] = None
    final_decision: Literal["matched", "skipped"] = "skipped"
    skip_reasons: list[str] = Field(default_factory=list)


class MatchPlan(BaseModel):
    """A selected owner membership for a booking, ready to be applied."""

    booking_id: str
    owner_id: str
    owner_membership_id: int
    borrow_membership_id: Optional[int] = None
    owner_email: str
    owner_name: str
    points_reserved: int
    points_reserved_current: int
    points_reserved_borrowed: int
    expires_at: datetime
    owner_payout: OwnerPayout
    booking: dict[str, Any]


class MatchRunError(BaseModel):
    """A non-fatal failure recorded during evaluation or apply."""

    booking_id: str
    step: str
    message: str
    details: Optional[Any] = None


class MatchResult(BaseModel):
    booking_id: str
    match_id: str


class MatchEvaluation(BaseModel):
    """Result of evaluate_match_bookings: nothing here has been persisted."""

    eligible_bookings: list[str] = Field(default_factory=list)
    evaluated_bookings: list[EvaluatedBooking] = Field(default_factory=list)
    match_plans: list[MatchPlan] = Field(default_factory=list)
    errors: list[MatchRunError] = Field(default_factory=list)


class MatchRunResult(BaseModel):
    """Result of run_match_bookings, returned as-is by the admin and cron routes."""

    ok: bool
    matches_created: int
    match_ids: list[str] = Field(default_factory=list)
    match_results: list[MatchResult] = Field(default_factory=list)
    dry_run: bool
    eligible_bookings: list[str] = Field(default_factory=list)
    evaluated_bookings: list[EvaluatedBooking] = Field(default_factory=list)
    errors: list[MatchRunError] = Field(default_factory=list)


class MatchRunPayload(BaseModel):
    """
    Schema for triggering a matching run from the admin surface.
    All fields are optional.
    """

    booking_id: Optional[str] = Field(None, description="Restrict the run to one booking request")
    dry_run: Optional[bool] = Field(None, description="Evaluate only; override DRY_RUN setting")
    limit: Optional[int] = Field(None, description="Max bookings per run (clamped to 1..50)")
    send_emails: bool = Field(True, description="Notify matched owners by email")
