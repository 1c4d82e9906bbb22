"""UTC datetime utilities."""

from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This function should be used instead of datetime.now() or datetime.utcnow()
    to ensure all timestamps are timezone-aware and stored in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def as_date(value: Any) -> Optional[date]:
    """
    Coerce a DB or payload value into a date.

    Accepts date, datetime, or ISO-8601 strings; anything unparseable yields None.

    Example:
        >>> as_date("2026-06-01")
        datetime.date(2026, 6, 1)
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(str(value)).date()
    except (ValueError, OverflowError):
        return None


def isoformat_or_none(value: Any) -> Optional[str]:
    """Return value.isoformat() for dates/datetimes, the value itself for strings."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
