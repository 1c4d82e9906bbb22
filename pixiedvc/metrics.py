"""
Prometheus metrics for matching runs, match lifecycle, and rental creation.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from pixiedvc.metrics import match_run_duration, matches_created
    >>> with match_run_duration.time():
    ...     result = run_match_bookings(engine, origin="https://pixiedvc.com")
    ...     matches_created.inc(result.matches_created)
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Matching Metrics
# =============================================================================

match_runs = Counter(
    "pixiedvc_match_runs_total",
    "Total number of matching runs",
    ["dry_run"],
)
"""
Counter for matching runs.

Labels:
    dry_run: "true" for evaluate-only runs, "false" for live runs
"""

match_run_duration = Histogram(
    "pixiedvc_match_run_duration_seconds",
    "Duration of matching runs in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
)

bookings_evaluated = Counter(
    "pixiedvc_bookings_evaluated_total",
    "Total booking requests evaluated by the matcher",
    ["decision"],
)
"""
Counter for evaluated bookings.

Labels:
    decision: matched or skipped
"""

matches_created = Counter(
    "pixiedvc_matches_created_total",
    "Total booking matches persisted",
)

match_apply_failures = Counter(
    "pixiedvc_match_apply_failures_total",
    "Total match plans that failed to apply",
)

owner_emails = Counter(
    "pixiedvc_owner_emails_total",
    "Owner match notification emails",
    ["status"],
)
"""
Counter for owner notification emails.

Labels:
    status: sent, skipped, or failed
"""

# =============================================================================
# Match Lifecycle Metrics
# =============================================================================

matches_released = Counter(
    "pixiedvc_matches_released_total",
    "Total matches released back to the pool",
    ["status"],
)
"""
Counter for released matches.

Labels:
    status: expired or declined
"""

rentals_ensured = Counter(
    "pixiedvc_rentals_ensured_total",
    "Total ensure-rental calls",
    ["outcome"],
)
"""
Counter for rental materialization.

Labels:
    outcome: created or updated
"""
