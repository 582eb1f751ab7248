"""Shared parsing helpers for tolerant header and option coercion."""

from __future__ import annotations

from typing import Any


def safe_int(value: Any) -> int | None:
    """Parse number-like input into int, returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.startswith("+"):
            raw = raw[1:]
        try:
            return int(raw)
        except ValueError:
            return None
    return None


def parse_csv(raw_value: str | None) -> list[str]:
    """Parse comma-separated values."""
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def pagination_done(count: Any, limit: Any, offset: Any = 0) -> bool:
    """True when no records remain past ``offset`` + ``limit``.

    Missing or unparseable counters mean the listing is complete.
    """
    total = safe_int(count)
    page = safe_int(limit)
    if total is None or page is None:
        return True
    start = safe_int(offset) or 0
    return total < page + start
