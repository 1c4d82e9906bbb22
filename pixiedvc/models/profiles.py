from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class Profile(Base):
    """
    ORM model for user profiles (guests and owners alike).

    The id is the authenticated user's id. Rewards enrollment timestamps live
    here because both programs are opt-in per user.
    """

    __tablename__ = "profiles"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True)
    email = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    payout_email = Column(String, nullable=True)
    guest_rewards_enrolled_at = Column(DateTime(timezone=True), nullable=True)
    owner_rewards_enrolled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
