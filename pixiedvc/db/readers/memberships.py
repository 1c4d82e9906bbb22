from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Connection

from pixiedvc.models.memberships import OwnerMembership
from pixiedvc.models.owners import Owner
from pixiedvc.models.profiles import Profile

MAX_CANDIDATE_MEMBERSHIPS = 200


def get_candidate_memberships(
    conn: Connection,
    resort_id: str,
    resort_code: Optional[str],
    limit: int = MAX_CANDIDATE_MEMBERSHIPS,
) -> list[dict[str, Any]]:
    """
    Load owner memberships that could fulfil a stay at the given resort.

    A membership qualifies when its resort_id is the booking resort, or when
    its home_resort code matches the resort's calculator code. Memberships
    whose points were assumed banked or expired are excluded.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        resort_id (str): Booking's primary resort id.
        resort_code (Optional[str]): Booking resort's calculator code.
        limit (int): Candidate cap.

    Returns:
        list[dict[str, Any]]: Membership rows flattened with the owner's
        verification flag, payout email, and linked profile contact fields.
    """
    if resort_code:
        resort_filter = or_(
            OwnerMembership.resort_id == resort_id,
            func.upper(OwnerMembership.home_resort) == resort_code.upper(),
        )
    else:
        resort_filter = OwnerMembership.resort_id == resort_id

    stmt = (
        select(
            OwnerMembership.id,
            OwnerMembership.owner_id,
            OwnerMembership.resort_id,
            OwnerMembership.home_resort,
            OwnerMembership.contract_year,
            OwnerMembership.use_year_start,
            OwnerMembership.use_year_end,
            OwnerMembership.points_available,
            OwnerMembership.points_reserved,
            OwnerMembership.borrowing_enabled,
            OwnerMembership.max_points_to_borrow,
            Owner.verification.label("owner_verification"),
            Owner.payout_email.label("owner_payout_email"),
            Profile.payout_email.label("profile_payout_email"),
            Profile.email.label("profile_email"),
            Profile.display_name.label("profile_display_name"),
        )
        .select_from(OwnerMembership)
        .outerjoin(Owner, Owner.id == OwnerMembership.owner_id)
        .outerjoin(Profile, Profile.id == Owner.user_id)
        .where(resort_filter)
        .where(OwnerMembership.banked_assumed_at.is_(None))
        .where(OwnerMembership.expired_assumed_at.is_(None))
        .order_by(OwnerMembership.id)
        .limit(limit)
    )
    return [dict(row) for row in conn.execute(stmt).mappings().all()]


def get_membership_resort_id(conn: Connection, membership_id: int) -> Optional[str]:
    """
    Get the resort_id of a membership.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        membership_id (int): Owner membership id.

    Returns:
        Optional[str]: Resort id or None if the membership does not exist.
    """
    result = conn.execute(
        select(OwnerMembership.resort_id).where(OwnerMembership.id == membership_id)
    )
    row = result.fetchone()
    return row[0] if row else None
