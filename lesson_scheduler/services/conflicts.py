"""Service for detecting scheduling conflicts against blocked time and lessons."""

from __future__ import annotations

import asyncio

from lesson_scheduler.domain.models import (
    BatchConflictItem,
    BlockingSlotSummary,
    ConflictDetail,
    ConflictSeverity,
    LessonConflictReport,
    TimeRange,
)
from lesson_scheduler.repos.ports import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.intervals import (
    FULL_CONFLICT_THRESHOLD,
    classify_severity,
    overlap_minutes,
    overlap_percentage,
    require_valid_range,
)

FULLY_BLOCKED_WARNING = "Cannot schedule - time is completely blocked by work events"


def _conflict_message(
    blocking_slots: list[BlockingSlotSummary], severity: ConflictSeverity
) -> str:
    if not blocking_slots:
        return ""

    count = len(blocking_slots)
    first = blocking_slots[0]

    if count == 1:
        if severity == ConflictSeverity.FULL:
            return f"This time is completely blocked by: {first.title}"
        return (
            f"This time partially conflicts with: {first.title} "
            f"({first.overlap_percentage}% overlap)"
        )

    if severity == ConflictSeverity.FULL:
        return f"This time is completely blocked by {count} events"
    return f"This time conflicts with {count} blocked time slots"


async def check_blocked_time_conflicts(
    blocked_repo: BlockedSlotRepository,
    organization_id: str,
    time_range: TimeRange,
    exclude_block_id: str | None = None,
    full_threshold: int = FULL_CONFLICT_THRESHOLD,
) -> ConflictDetail:
    """Return how badly active blocked slots eat into *time_range*.

    Severity is decided by the worst single slot.  Repository errors
    propagate; an empty result is a normal "no conflict" detail.
    """
    require_valid_range(time_range)
    blocks = await blocked_repo.find_overlapping(
        organization_id, time_range, exclude_id=exclude_block_id
    )

    blocking_slots: list[BlockingSlotSummary] = []
    for block in blocks:
        minutes = overlap_minutes(time_range, block)
        # Stores with inclusive bounds may hand back slots that only touch
        if minutes == 0:
            continue
        blocking_slots.append(
            BlockingSlotSummary(
                **block.model_dump(),
                overlap_minutes=minutes,
                overlap_percentage=overlap_percentage(time_range, block),
            )
        )

    if not blocking_slots:
        return ConflictDetail()

    worst = max(slot.overlap_percentage for slot in blocking_slots)
    severity = classify_severity(worst, full_threshold)
    return ConflictDetail(
        has_conflict=True,
        severity=severity,
        blocking_slots=blocking_slots,
        message=_conflict_message(blocking_slots, severity),
    )


async def check_lesson_conflicts(
    blocked_repo: BlockedSlotRepository,
    lesson_repo: LessonRepository,
    organization_id: str,
    time_range: TimeRange,
    learner_id: str | None = None,
    exclude_lesson_id: str | None = None,
    full_threshold: int = FULL_CONFLICT_THRESHOLD,
) -> LessonConflictReport:
    """Check a candidate lesson against blocked time and other lessons.

    Lesson overlap is scoped to *learner_id* when given.  The lesson being
    updated (*exclude_lesson_id*) never conflicts with itself.
    """
    require_valid_range(time_range)
    blocked, lesson_conflicts = await asyncio.gather(
        check_blocked_time_conflicts(
            blocked_repo, organization_id, time_range, full_threshold=full_threshold
        ),
        lesson_repo.find_overlapping(
            organization_id,
            time_range,
            learner_id=learner_id,
            exclude_lesson_id=exclude_lesson_id,
        ),
    )

    can_schedule = blocked.severity != ConflictSeverity.FULL and not lesson_conflicts

    warnings: list[str] = []
    if blocked.severity == ConflictSeverity.FULL:
        warnings.append(FULLY_BLOCKED_WARNING)
    elif blocked.severity == ConflictSeverity.PARTIAL:
        warnings.append(blocked.message or "Partial conflict with blocked time")

    if lesson_conflicts:
        warnings.append(f"Conflicts with {len(lesson_conflicts)} existing lesson(s)")

    return LessonConflictReport(
        has_conflict=blocked.has_conflict or bool(lesson_conflicts),
        blocked_time_conflicts=blocked,
        lesson_conflicts=lesson_conflicts,
        can_schedule=can_schedule,
        warnings=warnings,
    )


async def check_batch_conflicts(
    blocked_repo: BlockedSlotRepository,
    organization_id: str,
    ranges: list[TimeRange],
    full_threshold: int = FULL_CONFLICT_THRESHOLD,
) -> list[BatchConflictItem]:
    """Check several concrete candidate ranges against blocked time at once."""
    details = await asyncio.gather(
        *(
            check_blocked_time_conflicts(
                blocked_repo, organization_id, r, full_threshold=full_threshold
            )
            for r in ranges
        )
    )
    return [
        BatchConflictItem(index=i, has_conflict=d.has_conflict, conflict_details=d)
        for i, d in enumerate(details)
    ]
