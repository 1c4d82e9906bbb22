"""Pricing promotions: caps on loyalty perks while a campaign is running."""

from datetime import datetime
from typing import Any, Optional, Protocol

import structlog
from sqlalchemy.engine import Engine

from pixiedvc.db.readers.promotions import get_latest_active_promotion
from pixiedvc.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def is_within_window(promotion: dict[str, Any], now: datetime) -> bool:
    """
    Check whether an active promotion's [starts_at, ends_at] window contains now.

    Missing bounds are open-ended.
    """
    if not promotion.get("is_active"):
        return False

    starts_at = promotion.get("starts_at")
    if starts_at is not None and now < starts_at:
        return False

    ends_at = promotion.get("ends_at")
    if ends_at is not None and now > ends_at:
        return False

    return True


def get_active_promotion(engine: Engine, now: Optional[datetime] = None) -> Optional[dict[str, Any]]:
    """
    Return the promotion in effect at now, if any.

    Only the newest active row is considered; if its window does not contain
    now there is no active promotion.

    Args:
        engine (Engine): SQLAlchemy engine.
        now (Optional[datetime]): Reference time, defaults to utc_now().

    Returns:
        Optional[dict[str, Any]]: Promotion row or None.
    """
    now = now or utc_now()

    with engine.connect() as conn:
        promotion = get_latest_active_promotion(conn)

    if promotion is None or not is_within_window(promotion, now):
        return None

    logger.debug("active_promotion_found", promotion_id=promotion.get("id"))
    return promotion


class PromotionPolicy(Protocol):
    def get_active_promotion(self, now: datetime) -> Optional[dict[str, Any]]: ...


class DatabasePromotionPolicy:
    """PromotionPolicy backed by the pricing_promotions table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_active_promotion(self, now: datetime) -> Optional[dict[str, Any]]:
        return get_active_promotion(self.engine, now)
