from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class PricingPromotion(Base):
    """
    ORM model for a pricing promotion window.

    The newest active row whose window contains "now" caps loyalty perks:
    the guest reward per point, the owner bonus per point, and the minimum
    guest/owner spread the platform keeps.
    """

    __tablename__ = "pricing_promotions"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=text("FALSE"))
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    enrollment_required = Column(Boolean, nullable=False, server_default=text("TRUE"))
    guest_max_reward_per_point_cents = Column(Integer, nullable=False, server_default=text("0"))
    owner_max_bonus_per_point_cents = Column(Integer, nullable=False, server_default=text("0"))
    min_spread_per_point_cents = Column(Integer, nullable=False, server_default=text("0"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
