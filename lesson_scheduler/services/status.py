"""Service for recomputing and persisting a stored lesson's conflict flags."""

from __future__ import annotations

import logging

from lesson_scheduler.domain.errors import RepositoryError
from lesson_scheduler.domain.models import (
    ConflictFields,
    ConflictSeverity,
    LessonConflictReport,
    TimeRange,
    UpdateResult,
)
from lesson_scheduler.repos.ports import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.conflicts import check_lesson_conflicts
from lesson_scheduler.services.intervals import FULL_CONFLICT_THRESHOLD

logger = logging.getLogger(__name__)


def conflict_fields_from_report(report: LessonConflictReport) -> ConflictFields:
    blocked = report.blocked_time_conflicts
    has_lesson_conflicts = bool(report.lesson_conflicts)

    if blocked.severity != ConflictSeverity.NONE:
        severity: ConflictSeverity | None = blocked.severity
    elif has_lesson_conflicts:
        # Double-booked lessons are flagged, but never treated as fully blocked
        severity = ConflictSeverity.PARTIAL
    else:
        severity = None

    return ConflictFields(
        has_conflict=blocked.has_conflict or has_lesson_conflicts,
        conflict_severity=severity,
        conflicting_blocked_ids=[slot.id for slot in blocked.blocking_slots],
        conflicting_lesson_ids=[lesson.id for lesson in report.lesson_conflicts],
    )


async def update_conflict_status(
    blocked_repo: BlockedSlotRepository,
    lesson_repo: LessonRepository,
    lesson_id: str,
    organization_id: str,
    time_range: TimeRange,
    learner_id: str | None = None,
    full_threshold: int = FULL_CONFLICT_THRESHOLD,
) -> UpdateResult:
    """Re-check a stored lesson and write back its derived conflict fields.

    Lesson overlap is scoped to *learner_id* when given, organization-wide
    otherwise.  Repository failures are reported in the result rather than
    raised.
    """
    try:
        report = await check_lesson_conflicts(
            blocked_repo,
            lesson_repo,
            organization_id,
            time_range,
            learner_id=learner_id,
            exclude_lesson_id=lesson_id,
            full_threshold=full_threshold,
        )
        fields = conflict_fields_from_report(report)
        await lesson_repo.update_conflict_fields(lesson_id, organization_id, fields)
    except RepositoryError as exc:
        logger.warning("Failed to update conflict status for lesson %s: %s", lesson_id, exc)
        return UpdateResult(success=False, error=str(exc))

    return UpdateResult(success=True, has_conflict=fields.has_conflict)
