from __future__ import annotations

import logging
import sys
from typing import Any, Callable, MutableMapping, cast

import structlog

from pixiedvc.config import DEBUG, DRY_RUN, LOG_LEVEL

Processor = Callable[[Any, str, MutableMapping[str, Any]], Any]

SERVICE_NAME = "pixiedvc"

QUIET_LOGGERS = (
    "urllib3",
    "requests",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "uvicorn.access",
)


def add_service_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Tag every event with the service name, and dry_run when matching writes are off."""
    event_dict.setdefault("service", SERVICE_NAME)
    if DRY_RUN:
        event_dict.setdefault("dry_run", True)
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog for the API process and the matching script.

    DEBUG renders colored console lines; every other level renders JSON so
    matching runs can be searched by booking_id and match_id.
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=LOG_LEVEL,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Processor = cast(
        Processor,
        structlog.dev.ConsoleRenderer(colors=True) if DEBUG else structlog.processors.JSONRenderer(),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if not DEBUG:
        processors.append(structlog.processors.format_exc_info)
    processors += [structlog.processors.TimeStamper(fmt="iso", utc=True), renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
