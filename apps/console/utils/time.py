"""UTC time helpers (timezone-aware calculation, naive values)."""
from __future__ import annotations

import logging
from datetime import datetime, timezone, date, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return a UTC timestamp without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    """Return today's date in UTC (naive)."""
    return utc_now().date()


def resolve_timezone(name: str | None) -> tzinfo:
    """Zone used for API timestamps that carry no offset (``APP_TIMEZONE``)."""
    if not name or name.strip().upper() == 'UTC':
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '%s', reading naive timestamps as UTC", name)
        return timezone.utc


def parse_timestamp(value, assume_tz: tzinfo | None = None) -> datetime | None:
    """Parse an API timestamp into a naive UTC datetime.

    Accepts datetime/date objects and ISO-8601 strings such as
    ``2024-07-15``, ``2024-07-15 10:30:00`` or ``2024-07-15T10:30:00.000000Z``.
    Values without an offset are read in ``assume_tz`` (UTC when omitted).
    Returns None for anything that is not a valid calendar date.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith(('Z', 'z')):
            raw = raw[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None and assume_tz is not None:
        parsed = parsed.replace(tzinfo=assume_tz)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
