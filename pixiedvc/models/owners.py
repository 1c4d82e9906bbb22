from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class Owner(Base):
    """
    ORM model for DVC point owners.

    An owner has its own id and, separately, the user_id of the linked
    profile. Other tables may reference either one as "owner id".
    """

    __tablename__ = "owners"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.profiles.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    verification = Column(String, nullable=True)  # "verified" once approved
    payout_email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class OwnerVerification(Base):
    """ORM model for owner identity/ownership verification reviews."""

    __tablename__ = "owner_verifications"
    __table_args__ = {"schema": SCHEMA}

    owner_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.owners.id", ondelete="CASCADE"),
        primary_key=True,
    )
    status = Column(String, nullable=False, server_default=text("'pending'"))
    approved_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
