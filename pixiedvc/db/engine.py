"""
Shared SQLAlchemy engine for the API, the cron matcher and the CLI script.

Every booking evaluation borrows a short-lived connection and every write
path opens its own ``engine.begin()`` transaction, so the pool is sized for a
handful of concurrent requests rather than a web-scale fleet. A server-side
statement timeout bounds how long a ``FOR UPDATE`` lock wait on a booking row
can stall a matching run.
"""

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from pixiedvc.config import (
    DATABASE_URL,
    DB_MAX_OVERFLOW,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT_SECONDS,
    DB_STATEMENT_TIMEOUT_MS,
)

logger = structlog.get_logger(__name__)

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")

engine: Engine = create_engine(
    DATABASE_URL,
    future=True,
    pool_size=DB_POOL_SIZE,
    max_overflow=DB_MAX_OVERFLOW,
    pool_timeout=DB_POOL_TIMEOUT_SECONDS,
    pool_pre_ping=True,
    pool_recycle=1800,
    connect_args={
        "application_name": "pixiedvc-matcher",
        "options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
    },
)


def check_engine_health() -> bool:
    """
    Return True when a trivial query succeeds against the database.

    Backs the /ready endpoint and the integration suite's skip check.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("database_unreachable", error=str(e))
        return False
