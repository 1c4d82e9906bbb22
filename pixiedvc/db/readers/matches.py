from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from pixiedvc.models.matches import BookingMatch


def get_match(conn: Connection, match_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a booking match by id.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        match_id (str): Booking match id.

    Returns:
        Optional[dict[str, Any]]: All match columns or None if not found.
    """
    row = (
        conn.execute(select(BookingMatch.__table__).where(BookingMatch.id == match_id))
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def get_expired_pending_match_ids(conn: Connection, now: datetime) -> list[str]:
    """Return ids of pending_owner matches whose expires_at has passed."""
    result = conn.execute(
        select(BookingMatch.id)
        .where(BookingMatch.status == "pending_owner")
        .where(BookingMatch.expires_at.is_not(None))
        .where(BookingMatch.expires_at <= now)
        .order_by(BookingMatch.expires_at)
    )
    return list(result.scalars().all())
