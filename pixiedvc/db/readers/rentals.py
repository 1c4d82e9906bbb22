from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from pixiedvc.models.rentals import Rental, RentalMilestone

RENTAL_SUMMARY_COLUMNS = (
    Rental.id,
    Rental.check_in,
    Rental.owner_user_id,
    Rental.rental_amount_cents,
)


def get_rental_by_match(conn: Connection, match_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch the rental summary for a match, if one exists.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        match_id (str): Booking match id.

    Returns:
        Optional[dict[str, Any]]: id, check_in, owner_user_id and
        rental_amount_cents, or None.
    """
    row = (
        conn.execute(select(*RENTAL_SUMMARY_COLUMNS).where(Rental.match_id == match_id))
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def _completed_checkout_rental_ids():
    return (
        select(RentalMilestone.rental_id)
        .where(RentalMilestone.code == "check_out")
        .where(RentalMilestone.status == "completed")
    )


def count_completed_guest_bookings(conn: Connection, guest_user_id: str) -> int:
    """
    Count a guest's rentals whose check_out milestone is completed.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        guest_user_id (str): Guest profile id.

    Returns:
        int: Number of completed stays.
    """
    result = conn.execute(
        select(func.count(Rental.id))
        .where(Rental.guest_user_id == guest_user_id)
        .where(Rental.id.in_(_completed_checkout_rental_ids()))
    )
    return int(result.scalar() or 0)


def sum_owner_completed_points(conn: Connection, owner_user_id: str) -> int:
    """
    Sum points_required over an owner's rentals whose check_out is completed.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        owner_user_id (str): Owner profile id.

    Returns:
        int: Lifetime completed points.
    """
    result = conn.execute(
        select(func.coalesce(func.sum(Rental.points_required), 0))
        .where(Rental.owner_user_id == owner_user_id)
        .where(Rental.id.in_(_completed_checkout_rental_ids()))
    )
    return int(result.scalar() or 0)
