"""
Internal helpers mapping service exceptions to HTTP errors for match routes.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, status

from pixiedvc.services.match_responses import MatchResponseError
from pixiedvc.services.rentals import RentalPreconditionError

MATCH_RESPONSE_STATUS = {
    "match_not_found": status.HTTP_404_NOT_FOUND,
    "owner_mismatch": status.HTTP_403_FORBIDDEN,
    "match_expired": status.HTTP_410_GONE,
    "invalid_status": status.HTTP_409_CONFLICT,
}

NOT_FOUND_PRECONDITIONS = {"match_not_found", "booking_not_found"}


def raise_for_match_response_error(exc: MatchResponseError) -> NoReturn:
    """
    Raise the HTTPException matching a MatchResponseError code.

    Raises:
        HTTPException: 404, 403, 410 or 409; 500 for unknown codes.
    """
    raise HTTPException(
        status_code=MATCH_RESPONSE_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=exc.code,
    )


def raise_for_rental_precondition(exc: RentalPreconditionError) -> NoReturn:
    """
    Raise 404 for a missing match or booking, 422 for other broken upstream state.

    Raises:
        HTTPException: Always.
    """
    if exc.code in NOT_FOUND_PRECONDITIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.code)
    raise HTTPException(status_code=422, detail=str(exc))
