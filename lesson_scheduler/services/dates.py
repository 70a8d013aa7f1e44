"""Parsing of loosely formatted date bounds used by lesson scan filters."""

from __future__ import annotations

from datetime import datetime

import dateparser
from dateutil import tz

from lesson_scheduler import config
from lesson_scheduler.domain.errors import InvalidRangeError


def parse_date_bound(raw: str | None, now: datetime | None = None) -> datetime | None:
    """Turn ``"2026-09-01"``, ``"today"`` or ``"2 weeks ago"`` into an aware datetime.

    Returns ``None`` for an empty value.  Values without an offset are
    interpreted in the scheduling timezone.
    """
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    zone = tz.gettz(config.SCHEDULING_TIMEZONE) or tz.UTC

    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        base = (now or datetime.now(zone)).astimezone(zone)
        settings = {
            "PREFER_DATES_FROM": "past",
            "RELATIVE_BASE": base.replace(tzinfo=None),
            "RETURN_AS_TIMEZONE_AWARE": False,
        }
        parsed = dateparser.parse(raw, settings=settings)
        if parsed is None:
            raise InvalidRangeError(f"Could not understand date: {raw!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed
