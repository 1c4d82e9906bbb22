from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import Connection

from pixiedvc.models.rentals import Rental, RentalMilestone


def insert_rental(conn: Connection, data: dict[str, Any]) -> Optional[str]:
    """
    Insert a rental unless one already exists for the match.

    Args:
        conn (Connection): SQLAlchemy DB connection (inside a transaction).
        data (dict): Rental column values, including match_id.

    Returns:
        Optional[str]: New rental id, or None if a rental for this match_id
        already existed.
    """
    stmt = (
        insert(Rental)
        .values(**data)
        .on_conflict_do_nothing(index_elements=["match_id"])
        .returning(Rental.id)
    )
    row = conn.execute(stmt).fetchone()
    return str(row[0]) if row else None


def update_rental(conn: Connection, rental_id: str, data: dict[str, Any]) -> None:
    """
    Refresh an existing rental's mutable fields.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        rental_id (str): Rental id.
        data (dict): Column values to set.
    """
    conn.execute(
        update(Rental).where(Rental.id == rental_id).values(**data, updated_at=func.now())
    )


def seed_rental_milestones(conn: Connection, rental_id: str, milestones: list[dict[str, Any]]) -> None:
    """
    Insert the milestone checklist for a new rental.

    ON CONFLICT (rental_id, code) DO NOTHING keeps the checklist free of
    duplicates even if seeding is ever retried.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        rental_id (str): Rental id.
        milestones (list[dict]): code, position, status, occurred_at per row.
    """
    if not milestones:
        return

    rows = [{"rental_id": rental_id, **milestone} for milestone in milestones]
    conn.execute(
        insert(RentalMilestone)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["rental_id", "code"])
    )
