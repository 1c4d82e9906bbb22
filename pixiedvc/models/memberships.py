from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class OwnerMembership(Base):
    """
    ORM model for one owner's contract-year point bucket at a home resort.

    points_available - points_reserved is the usable balance. points_reserved
    is only ever moved by the match apply/release transactions.
    """

    __tablename__ = "owner_memberships"
    __table_args__ = (
        UniqueConstraint("owner_id", "resort_id", "contract_year", name="uq_membership_contract_year"),
        {"schema": SCHEMA},
    )

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    owner_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.owners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resort_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.resorts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    home_resort = Column(String, nullable=True, index=True)  # calculator code
    contract_year = Column(Integer, nullable=True)
    use_year_start = Column(Date, nullable=True)
    use_year_end = Column(Date, nullable=True)
    points_owned = Column(Integer, nullable=True)
    points_available = Column(Integer, nullable=False, server_default=text("0"))
    points_reserved = Column(Integer, nullable=False, server_default=text("0"))
    borrowing_enabled = Column(Boolean, nullable=False, server_default=text("FALSE"))
    max_points_to_borrow = Column(Integer, nullable=False, server_default=text("0"))
    banked_assumed_at = Column(DateTime(timezone=True), nullable=True)
    expired_assumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
