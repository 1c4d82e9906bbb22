import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from pixiedvc.config import APP_ORIGIN
from pixiedvc.dependencies import get_db_engine, require_cron_secret
from pixiedvc.services.match_responses import expire_stale_matches
from pixiedvc.services.matching import DEFAULT_LIMIT, run_match_bookings

logger = structlog.get_logger(__name__)
router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/match-bookings")
def cron_match_bookings(engine: Engine = Depends(get_db_engine)) -> JSONResponse:
    """
    Scheduled matching pass: expire stale matches, then a live run with emails.

    Returns:
        JSONResponse: {"expired": n, "result": MatchRunResult}. HTTP 500 if
        the run recorded errors.
    """
    try:
        expired = expire_stale_matches(engine)
        result = run_match_bookings(
            engine, origin=APP_ORIGIN, dry_run=False, limit=DEFAULT_LIMIT, send_emails=True
        )
    except Exception as e:
        logger.exception("cron_match_bookings_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(
        "cron_match_bookings_completed",
        expired=expired,
        matches_created=result.matches_created,
        errors=len(result.errors),
    )
    return JSONResponse(
        status_code=200 if result.ok else 500,
        content={"expired": expired, "result": result.model_dump(mode="json")},
    )
