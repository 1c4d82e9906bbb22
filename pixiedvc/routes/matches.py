"""
Owner accept/decline endpoints.

The web app authenticates the owner and relays the response here with the
admin token; owner_id in the body is checked against the match.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.engine import Engine

from pixiedvc.dependencies import get_db_engine, require_admin_token
from pixiedvc.routes._match_helpers import (
    raise_for_match_response_error,
    raise_for_rental_precondition,
)
from pixiedvc.schemas.rentals import MatchResponseResult, OwnerResponsePayload
from pixiedvc.services.match_responses import MatchResponseError, accept_match, decline_match
from pixiedvc.services.rentals import RentalPreconditionError

logger = structlog.get_logger(__name__)
router = APIRouter(dependencies=[Depends(require_admin_token)])


@router.post("/{match_id}/accept", response_model=MatchResponseResult)
def accept(
    match_id: str,
    payload: Optional[OwnerResponsePayload] = Body(None),
    engine: Engine = Depends(get_db_engine),
) -> MatchResponseResult:
    owner_id = payload.owner_id if payload else None
    try:
        return accept_match(engine, match_id, owner_id=owner_id)
    except MatchResponseError as e:
        logger.info("owner_accept_rejected", match_id=match_id, code=e.code, status=e.status)
        raise_for_match_response_error(e)
    except RentalPreconditionError as e:
        logger.error("owner_accept_rental_failed", match_id=match_id, code=e.code)
        raise_for_rental_precondition(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("owner_accept_failed", match_id=match_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{match_id}/decline", response_model=MatchResponseResult)
def decline(
    match_id: str,
    payload: Optional[OwnerResponsePayload] = Body(None),
    engine: Engine = Depends(get_db_engine),
) -> MatchResponseResult:
    owner_id = payload.owner_id if payload else None
    try:
        return decline_match(engine, match_id, owner_id=owner_id)
    except MatchResponseError as e:
        logger.info("owner_decline_rejected", match_id=match_id, code=e.code, status=e.status)
        raise_for_match_response_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("owner_decline_failed", match_id=match_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
