from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class BookingRequest(Base):
    """
    ORM model for a guest's request to rent DVC points for a stay.

    Status moves submitted -> pending_owner (match applied) -> matched (owner
    accepted) -> confirmed/cancelled. guest_total_cents is the guest-facing
    price and may be reduced once by the guest perks discount; the
    guest_total_cents_final column records that the discount was applied.
    """

    __tablename__ = "booking_requests"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    renter_id = Column(
        UUID(as_uuid=False),
        ForeignKey(f"{SCHEMA}.profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status = Column(String, nullable=False, server_default=text("'draft'"), index=True)
    primary_resort_id = Column(
        UUID(as_uuid=False), ForeignKey(f"{SCHEMA}.resorts.id"), nullable=True
    )
    primary_room = Column(String, nullable=True)
    primary_view = Column(String, nullable=True)
    check_in = Column(Date, nullable=True)
    check_out = Column(Date, nullable=True)
    nights = Column(Integer, nullable=True)
    total_points = Column(Integer, nullable=True)
    adults = Column(Integer, nullable=True)
    youths = Column(Integer, nullable=True)
    requires_accessibility = Column(Boolean, nullable=False, server_default=text("FALSE"))
    comments = Column(Text, nullable=True)
    max_price_per_point = Column(Integer, nullable=True)
    est_cash = Column(Integer, nullable=True)

    deposit_due = Column(Integer, nullable=True)
    deposit_paid = Column(Integer, nullable=True)
    deposit_currency = Column(String, nullable=True)

    guest_total_cents = Column(Integer, nullable=True)
    guest_rate_per_point_cents = Column(Integer, nullable=True)
    guest_total_cents_final = Column(Integer, nullable=True)
    guest_discount_cents = Column(Integer, nullable=True)
    guest_reward_per_point_cents = Column(Integer, nullable=True)
    guest_perks_discount_pct = Column(Integer, nullable=True)

    lead_guest_name = Column(String, nullable=True)
    lead_guest_email = Column(String, nullable=True)
    lead_guest_phone = Column(String, nullable=True)
    address_line1 = Column(String, nullable=True)
    address_line2 = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    country = Column(String, nullable=True)

    guest_profile_complete_at = Column(DateTime(timezone=True), nullable=True)
    guest_agreement_accepted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
