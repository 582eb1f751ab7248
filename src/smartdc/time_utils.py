"""Shared UTC timestamp helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime


def utc_now() -> datetime:
    """Return current UTC time with second precision."""
    return datetime.now(UTC).replace(microsecond=0)


def http_date(value: datetime | None = None) -> str:
    """Format a datetime as an RFC 7231 HTTP-date (always GMT)."""
    moment = utc_now() if value is None else value
    normalized = moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment.astimezone(UTC)
    return format_datetime(normalized, usegmt=True)


def parse_http_date(value: str) -> datetime | None:
    """Parse an HTTP-date header value, returning None when invalid."""
    raw = value.strip()
    if not raw:
        return None
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
