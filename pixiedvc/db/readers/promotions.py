from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from pixiedvc.models.promotions import PricingPromotion


def get_latest_active_promotion(conn: Connection) -> Optional[dict[str, Any]]:
    """
    Fetch the most recently created pricing promotion flagged is_active.

    The start/end window is not checked here; callers decide whether the
    promotion is in effect for their reference time.

    Args:
        conn (Connection): SQLAlchemy DB connection.

    Returns:
        Optional[dict[str, Any]]: Promotion row or None.
    """
    row = (
        conn.execute(
            select(PricingPromotion.__table__)
            .where(PricingPromotion.is_active.is_(True))
            .order_by(PricingPromotion.created_at.desc())
            .limit(1)
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None
