from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from pixiedvc.config import SCHEMA
from pixiedvc.models.base import Base


class Resort(Base):
    """
    ORM model for DVC resorts.

    calculator_code is the short DVC code (e.g. "BLT", "VGF") that owner
    memberships reference through their home_resort column.
    """

    __tablename__ = "resorts"
    __table_args__ = {"schema": SCHEMA}

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    slug = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    calculator_code = Column(String, nullable=True, index=True)
    is_resale_restricted_resort = Column(Boolean, nullable=False, server_default=text("FALSE"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
