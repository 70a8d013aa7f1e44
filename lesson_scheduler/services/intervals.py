"""Interval arithmetic and overlap severity classification.

All helpers accept any object exposing ``start`` and ``end`` datetimes
(TimeRange, BlockedSlot, Lesson).  Overlap is strict: ranges that only
touch at an endpoint do not overlap.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Protocol

from lesson_scheduler import config
from lesson_scheduler.domain.errors import InvalidRangeError
from lesson_scheduler.domain.models import ConflictSeverity

FULL_CONFLICT_THRESHOLD = config.FULL_CONFLICT_THRESHOLD


class HasTimeRange(Protocol):
    start: datetime
    end: datetime


def require_valid_range(r: HasTimeRange) -> None:
    """Raise InvalidRangeError unless ``r.start < r.end``."""
    if r.start >= r.end:
        raise InvalidRangeError(
            f"Invalid time range: start {r.start.isoformat()} "
            f"is not before end {r.end.isoformat()}"
        )


def duration_minutes(r: HasTimeRange) -> float:
    require_valid_range(r)
    return (r.end - r.start).total_seconds() / 60


def overlaps(a: HasTimeRange, b: HasTimeRange) -> bool:
    return a.start < b.end and a.end > b.start


def overlap_minutes(a: HasTimeRange, b: HasTimeRange) -> float:
    if not overlaps(a, b):
        return 0
    overlap_start = max(a.start, b.start)
    overlap_end = min(a.end, b.end)
    return (overlap_end - overlap_start).total_seconds() / 60


def overlap_percentage(a: HasTimeRange, b: HasTimeRange) -> int:
    """Return the share of *a* (the candidate range) covered by *b*, 0-100."""
    total = duration_minutes(a)
    minutes = overlap_minutes(a, b)
    if minutes == 0:
        return 0
    # round half up; the builtin round() would send 12.5 to 12
    return math.floor(minutes / total * 100 + 0.5)


def classify_severity(
    percentage: float, full_threshold: int = FULL_CONFLICT_THRESHOLD
) -> ConflictSeverity:
    if percentage <= 0:
        return ConflictSeverity.NONE
    if percentage >= full_threshold:
        return ConflictSeverity.FULL
    return ConflictSeverity.PARTIAL
