from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class EnsureRentalResult(BaseModel):
    """Identity and payout of the rental backing an accepted match."""

    rental_id: str
    check_in: Optional[date] = None
    owner_user_id: str
    rental_amount_cents: Optional[int] = None


class MatchResponseResult(BaseModel):
    """Outcome of an owner accepting or declining a match."""

    match_id: str
    status: str
    rental: Optional[EnsureRentalResult] = None


class OwnerResponsePayload(BaseModel):
    """Body relayed by the web app when an owner accepts or declines."""

    owner_id: Optional[str] = Field(
        None, description="owners.id or the owner's user id; checked against the match"
    )


class ExpireStaleResult(BaseModel):
    expired: int
