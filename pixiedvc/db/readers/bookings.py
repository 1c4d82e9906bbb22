from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from pixiedvc.models.bookings import BookingRequest
from pixiedvc.models.matches import BookingMatch
from pixiedvc.models.resorts import Resort


def load_bookings_for_matching(
    conn: Connection,
    booking_id: Optional[str],
    limit: int,
    statuses: Iterable[str],
) -> list[dict[str, Any]]:
    """
    Load booking requests for a matching pass, newest first.

    A single booking_id is loaded regardless of status so the evaluator can
    record why it is not matchable; otherwise only the given statuses are
    loaded.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (Optional[str]): Restrict to one booking request.
        limit (int): Max rows to return.
        statuses (Iterable[str]): Matchable statuses for the batch query.

    Returns:
        list[dict[str, Any]]: Booking rows with resort name/code and a
        has_pending_owner_match flag.
    """
    has_pending_owner_match = (
        select(BookingMatch.id)
        .where(BookingMatch.booking_id == BookingRequest.id)
        .where(BookingMatch.status == "pending_owner")
        .exists()
    )

    stmt = (
        select(
            BookingRequest.id,
            BookingRequest.primary_resort_id,
            BookingRequest.total_points,
            BookingRequest.status,
            BookingRequest.check_in,
            BookingRequest.check_out,
            BookingRequest.deposit_due,
            BookingRequest.deposit_paid,
            BookingRequest.guest_total_cents,
            BookingRequest.guest_rate_per_point_cents,
            BookingRequest.lead_guest_name,
            BookingRequest.lead_guest_email,
            Resort.name.label("resort_name"),
            Resort.calculator_code.label("resort_calculator_code"),
            has_pending_owner_match.label("has_pending_owner_match"),
        )
        .select_from(BookingRequest)
        .outerjoin(Resort, Resort.id == BookingRequest.primary_resort_id)
        .order_by(BookingRequest.created_at.desc())
        .limit(limit)
    )

    if booking_id:
        stmt = stmt.where(BookingRequest.id == booking_id)
    else:
        stmt = stmt.where(BookingRequest.status.in_(list(statuses)))

    return [dict(row) for row in conn.execute(stmt).mappings().all()]


def get_booking_for_rental(conn: Connection, booking_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch every booking field the rental snapshot and pricing need.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (str): Booking request id.

    Returns:
        Optional[dict[str, Any]]: Booking row joined with resort slug, name and
        calculator code, or None if not found.
    """
    stmt = (
        select(
            BookingRequest.__table__,
            Resort.slug.label("resort_slug"),
            Resort.name.label("resort_name"),
            Resort.calculator_code.label("resort_calculator_code"),
        )
        .select_from(BookingRequest)
        .outerjoin(Resort, Resort.id == BookingRequest.primary_resort_id)
        .where(BookingRequest.id == booking_id)
    )
    row = conn.execute(stmt).mappings().fetchone()
    return dict(row) if row else None
