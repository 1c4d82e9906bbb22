from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from pixiedvc.models.owners import Owner, OwnerVerification
from pixiedvc.models.profiles import Profile


def get_owner_verification_statuses(
    conn: Connection, owner_ids: Iterable[str]
) -> dict[str, Optional[str]]:
    """
    Bulk-load verification review status for a set of owners.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        owner_ids (Iterable[str]): Owner ids to look up.

    Returns:
        dict[str, Optional[str]]: owner_id -> status ("approved", "pending", ...).
        Owners without a review row are absent.
    """
    ids = list(owner_ids)
    if not ids:
        return {}

    result = conn.execute(
        select(OwnerVerification.owner_id, OwnerVerification.status).where(
            OwnerVerification.owner_id.in_(ids)
        )
    )
    return {row[0]: row[1] for row in result}


def resolve_owner_user_id(conn: Connection, owner_id: str) -> Optional[str]:
    """
    Resolve the profile user id behind an "owner id".

    Match rows store owners.id, but older rows may carry the owner's user id
    instead. The owners table is searched by id first, then by user_id.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        owner_id (str): Either owners.id or owners.user_id.

    Returns:
        Optional[str]: The owner's user id, or None if no owner row matches.
    """
    row = conn.execute(select(Owner.user_id).where(Owner.id == owner_id)).fetchone()
    if row and row[0]:
        return row[0]

    row = conn.execute(select(Owner.user_id).where(Owner.user_id == owner_id)).fetchone()
    return row[0] if row else None


def get_profile_rewards_enrollment(conn: Connection, user_id: str) -> Optional[dict[str, Any]]:
    """Return the guest/owner rewards enrollment timestamps for a profile."""
    row = (
        conn.execute(
            select(
                Profile.guest_rewards_enrolled_at,
                Profile.owner_rewards_enrolled_at,
            ).where(Profile.id == user_id)
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None
