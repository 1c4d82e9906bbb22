from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from pixiedvc.config import APP_ORIGIN, DRY_RUN
from pixiedvc.dependencies import get_db_engine, require_admin_token
from pixiedvc.routes._match_helpers import raise_for_rental_precondition
from pixiedvc.schemas.matching import MatchRunPayload
from pixiedvc.schemas.rentals import EnsureRentalResult, ExpireStaleResult
from pixiedvc.services.match_responses import expire_stale_matches
from pixiedvc.services.matching import clamp_match_limit, run_match_bookings
from pixiedvc.services.rentals import RentalPreconditionError, ensure_rental_for_match

logger = structlog.get_logger(__name__)
router = APIRouter(dependencies=[Depends(require_admin_token)])


@router.post("/matching/run")
def run_matching(
    payload: Optional[MatchRunPayload] = Body(None),
    engine: Engine = Depends(get_db_engine),
) -> JSONResponse:
    """
    Run the matcher from the admin surface.

    dry_run falls back to the DRY_RUN setting when omitted.

    Returns:
        JSONResponse: The MatchRunResult, HTTP 200 when ok and 500 when any
        per-booking error was recorded.
    """
    payload = payload or MatchRunPayload()
    dry_run = DRY_RUN if payload.dry_run is None else payload.dry_run

    try:
        result = run_match_bookings(
            engine,
            origin=APP_ORIGIN,
            dry_run=dry_run,
            booking_id=payload.booking_id,
            limit=clamp_match_limit(payload.limit),
            send_emails=payload.send_emails,
        )
    except Exception as e:
        logger.exception("admin_match_run_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return JSONResponse(
        status_code=status.HTTP_200_OK if result.ok else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=result.model_dump(mode="json"),
    )


@router.post("/matching/expire-stale", response_model=ExpireStaleResult)
def expire_stale(engine: Engine = Depends(get_db_engine)) -> ExpireStaleResult:
    """Release every pending match past its expires_at."""
    try:
        return ExpireStaleResult(expired=expire_stale_matches(engine))
    except Exception as e:
        logger.exception("admin_expire_stale_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/matches/{match_id}/rental", response_model=EnsureRentalResult)
def ensure_rental(match_id: str, engine: Engine = Depends(get_db_engine)) -> EnsureRentalResult:
    """
    Create or refresh the rental for a match.

    Raises:
        HTTPException: 404 if the match or booking is missing, 422 for other
            upstream data problems, 500 on unexpected failures.
    """
    try:
        return ensure_rental_for_match(engine, match_id)
    except RentalPreconditionError as e:
        logger.warning("admin_ensure_rental_rejected", match_id=match_id, code=e.code)
        raise_for_rental_precondition(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("admin_ensure_rental_failed", match_id=match_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
