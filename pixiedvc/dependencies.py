"""
FastAPI dependency providers.

Routes receive the engine through get_db_engine so tests can swap it via
app.dependency_overrides. The admin and cron surfaces are guarded by shared
secrets from the environment.
"""

from __future__ import annotations

import secrets
from typing import Generator, Optional

import structlog
from fastapi import Header, HTTPException, status
from sqlalchemy.engine import Engine

from pixiedvc import config
from pixiedvc.db.engine import engine

logger = structlog.get_logger(__name__)


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide the database engine.

    Testing Example:
        >>> from unittest.mock import MagicMock
        >>> app.dependency_overrides[get_db_engine] = lambda: MagicMock()
    """
    yield engine


def _secret_matches(provided: Optional[str], expected: Optional[str]) -> bool:
    if not expected or not provided:
        return False
    return secrets.compare_digest(provided, expected)


def require_admin_token(authorization: Optional[str] = Header(None)) -> None:
    """
    Require "Authorization: Bearer <ADMIN_API_TOKEN>".

    Raises:
        HTTPException: 503 if no admin token is configured, 401 if the header
            is missing or wrong.
    """
    if not config.ADMIN_API_TOKEN:
        logger.error("admin_token_not_configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is not configured",
        )

    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :].strip()

    if not _secret_matches(token, config.ADMIN_API_TOKEN):
        logger.warning("admin_auth_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    """
    Require the x-cron-secret header to equal CRON_SECRET.

    Raises:
        HTTPException: 503 if CRON_SECRET is unset, 401 on mismatch.
    """
    if not config.CRON_SECRET:
        logger.error("cron_secret_not_configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cron endpoint is not configured",
        )

    if not _secret_matches(x_cron_secret, config.CRON_SECRET):
        logger.warning("cron_auth_failed")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
