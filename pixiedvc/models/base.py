from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All marketplace tables (resorts, owners, memberships, bookings, matches,
    rentals, promotions) share this metadata so Alembic sees a single schema.
    """

    pass
