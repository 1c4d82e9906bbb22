from typing import Any, Iterable

from sqlalchemy import func, update
from sqlalchemy.engine import Connection

from pixiedvc.models.bookings import BookingRequest


def apply_guest_pricing(conn: Connection, booking_id: str, data: dict[str, Any]) -> bool:
    """
    Write the guest's final discounted price, once.

    Guarded by guest_total_cents_final IS NULL so a retry or a second accept
    never discounts the same booking twice.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (str): Booking request id.
        data (dict): guest_total_cents, guest_rate_per_point_cents,
            guest_total_cents_final, guest_discount_cents,
            guest_reward_per_point_cents, guest_perks_discount_pct.

    Returns:
        bool: True if the row was updated.
    """
    row = conn.execute(
        update(BookingRequest)
        .where(BookingRequest.id == booking_id)
        .where(BookingRequest.guest_total_cents_final.is_(None))
        .values(**data, updated_at=func.now())
        .returning(BookingRequest.id)
    ).fetchone()
    return row is not None


def update_booking_status(
    conn: Connection, booking_id: str, status: str, from_statuses: Iterable[str]
) -> bool:
    """
    Move a booking to a new status if it is currently in one of from_statuses.

    Returns:
        bool: True if the row was updated.
    """
    row = conn.execute(
        update(BookingRequest)
        .where(BookingRequest.id == booking_id)
        .where(BookingRequest.status.in_(list(from_statuses)))
        .values(status=status, updated_at=func.now())
        .returning(BookingRequest.id)
    ).fetchone()
    return row is not None
