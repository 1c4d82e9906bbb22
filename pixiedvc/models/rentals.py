from sqlalchemy import (
    Column,
    DateTime,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class Rental(Base):
    """
    ORM model for a rental materialized from an accepted match.

    One rental per match (unique match_id). booking_package is a snapshot of
    the booking taken when the rental is written, so downstream screens don't
    have to join back to booking_requests.
    """

    __tablename__ = "rentals"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    match_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.booking_matches.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    owner_id = Column(UUID(as_uuid=False), nullable=True)
    owner_user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    guest_id = Column(UUID(as_uuid=False), nullable=True)
    guest_user_id = Column(UUID(as_uuid=False), nullable=True, index=True)
    resort_code = Column(String, nullable=True)
    room_type = Column(String, nullable=True)
    check_in = Column(Date, nullable=True)
    check_out = Column(Date, nullable=True)
    points_required = Column(Integer, nullable=True)
    rental_amount_cents = Column(Integer, nullable=True)
    status = Column(String, nullable=False, server_default=text("'needs_dvc_booking'"))
    booking_package = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    adults = Column(Integer, nullable=True)
    youths = Column(Integer, nullable=True)
    dvc_confirmation_number = Column(String, nullable=True)
    disney_confirmation_number = Column(String, nullable=True)
    lead_guest_name = Column(String, nullable=True)
    lead_guest_email = Column(String, nullable=True)
    lead_guest_phone = Column(String, nullable=True)
    lead_guest_address = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class RentalMilestone(Base):
    """ORM model for one step of a rental's progress checklist."""

    __tablename__ = "rental_milestones"
    __table_args__ = (
        UniqueConstraint("rental_id", "code", name="uq_rental_milestone_code"),
        {"schema": SCHEMA},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    rental_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.rentals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    status = Column(String, nullable=False, server_default=text("'pending'"))
    occurred_at = Column(DateTime(timezone=True), nullable=True)
