from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class BookingMatch(Base):
    """
    ORM model for a booking matched to an owner membership.

    Created by the atomic apply transaction with status pending_owner and an
    expires_at one hour out. points_reserved_current/borrowed record how the
    reservation was split between this use year and the next one, so a
    release can return the exact amounts.
    """

    __tablename__ = "booking_matches"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    booking_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.booking_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id = Column(
        UUID(as_uuid=False), ForeignKey(f"{SCHEMA}.owners.id"), nullable=False, index=True
    )
    owner_membership_id = Column(
        BigInteger, ForeignKey(f"{SCHEMA}.owner_memberships.id"), nullable=False
    )
    borrow_membership_id = Column(
        BigInteger, ForeignKey(f"{SCHEMA}.owner_memberships.id"), nullable=True
    )
    status = Column(String, nullable=False, server_default=text("'pending_owner'"), index=True)
    points_reserved = Column(Integer, nullable=False)
    points_reserved_current = Column(Integer, nullable=False, server_default=text("0"))
    points_reserved_borrowed = Column(Integer, nullable=False, server_default=text("0"))

    owner_base_rate_per_point_cents = Column(Integer, nullable=True)
    owner_premium_per_point_cents = Column(Integer, nullable=True)
    owner_rate_per_point_cents = Column(Integer, nullable=True)
    owner_total_cents = Column(Integer, nullable=True)
    owner_home_resort_premium_applied = Column(Boolean, nullable=False, server_default=text("FALSE"))
    owner_bonus_per_point_cents = Column(Integer, nullable=True)
    owner_rewards_tier = Column(String, nullable=True)

    expires_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
