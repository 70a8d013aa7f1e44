"""Batch re-check of stored lessons after blocked time changes."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from lesson_scheduler.domain.models import (
    ConflictSeverity,
    ConflictSummary,
    Lesson,
    LessonFilter,
    ScanError,
    ScanResult,
    UpdateResult,
)
from lesson_scheduler.repos.ports import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.intervals import FULL_CONFLICT_THRESHOLD
from lesson_scheduler.services.status import update_conflict_status

logger = logging.getLogger(__name__)


async def scan_and_update(
    blocked_repo: BlockedSlotRepository,
    lesson_repo: LessonRepository,
    lesson_filter: LessonFilter,
    concurrency: int = 1,
    full_threshold: int = FULL_CONFLICT_THRESHOLD,
) -> ScanResult:
    """Recompute conflict flags for every lesson matching *lesson_filter*.

    A failing lesson is recorded in ``errors`` and the scan carries on.
    At most *concurrency* lessons are updated at the same time; only the
    initial lesson fetch may raise.
    """
    lessons = await lesson_repo.find_by_filter(lesson_filter)
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _update(lesson: Lesson) -> UpdateResult:
        async with semaphore:
            try:
                return await update_conflict_status(
                    blocked_repo,
                    lesson_repo,
                    lesson.id,
                    lesson.organization_id,
                    lesson.time_range,
                    learner_id=lesson.learner_id,
                    full_threshold=full_threshold,
                )
            except Exception as exc:
                # Adapters may fail with errors outside RepositoryError
                logger.exception("Conflict rescan failed for lesson %s", lesson.id)
                return UpdateResult(success=False, error=str(exc) or type(exc).__name__)

    results = await asyncio.gather(*(_update(lesson) for lesson in lessons))

    scan = ScanResult(scanned=len(lessons))
    for lesson, result in zip(lessons, results):
        if result.success:
            scan.updated += 1
            if result.has_conflict:
                scan.conflicts_found += 1
        else:
            scan.errors.append(
                ScanError(lesson_id=lesson.id, error=result.error or "Unknown error")
            )

    logger.info(
        "Scanned %d lessons for organization %s: %d updated, %d with conflicts, %d errors",
        scan.scanned,
        lesson_filter.organization_id,
        scan.updated,
        scan.conflicts_found,
        len(scan.errors),
    )
    return scan


async def summarize_conflicts(
    lesson_repo: LessonRepository,
    organization_id: str,
    now: datetime,
    limit: int = 10,
) -> ConflictSummary:
    """Count conflicted lessons by severity and list the next few upcoming."""
    conflicted = await lesson_repo.find_by_filter(
        LessonFilter(organization_id=organization_id, has_conflict=True)
    )
    upcoming = [lesson for lesson in conflicted if lesson.start >= now]
    return ConflictSummary(
        total_conflicts=len(conflicted),
        full_conflicts=sum(
            1 for lesson in conflicted if lesson.conflict_severity == ConflictSeverity.FULL
        ),
        partial_conflicts=sum(
            1 for lesson in conflicted if lesson.conflict_severity == ConflictSeverity.PARTIAL
        ),
        recent_conflicts=sorted(upcoming, key=lambda lesson: lesson.start)[:limit],
    )
