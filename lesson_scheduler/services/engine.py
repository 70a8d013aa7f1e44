"""Caller-facing scheduling engine with its repositories injected."""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo

from lesson_scheduler import config
from lesson_scheduler.domain.models import (
    BatchConflictItem,
    ConflictDetail,
    ConflictSummary,
    DateRange,
    LessonConflictReport,
    LessonFilter,
    ScanResult,
    SlotSearchOptions,
    TimeRange,
    UpdateResult,
    ValidationOptions,
    ValidationResult,
)
from lesson_scheduler.repos.ports import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.conflicts import (
    check_batch_conflicts,
    check_blocked_time_conflicts,
    check_lesson_conflicts,
)
from lesson_scheduler.services.scanner import scan_and_update, summarize_conflicts
from lesson_scheduler.services.slots import find_available_slots
from lesson_scheduler.services.status import update_conflict_status
from lesson_scheduler.services.validation import evaluate

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """Conflict detection, validation and write-back for lesson scheduling.

    The engine holds no mutable state of its own; concurrent calls for
    different organizations or lessons are independent.
    """

    def __init__(
        self,
        blocked_repo: BlockedSlotRepository,
        lesson_repo: LessonRepository,
        full_threshold: int = config.FULL_CONFLICT_THRESHOLD,
        scan_concurrency: int = config.SCAN_CONCURRENCY,
        timezone: tzinfo | None = None,
    ) -> None:
        self.blocked_repo = blocked_repo
        self.lesson_repo = lesson_repo
        self.full_threshold = full_threshold
        self.scan_concurrency = scan_concurrency
        self.timezone = timezone

    # ------------------------------------------------------------------
    # Conflict checks
    # ------------------------------------------------------------------

    async def check_blocked_time(
        self,
        organization_id: str,
        time_range: TimeRange,
        exclude_block_id: str | None = None,
    ) -> ConflictDetail:
        return await check_blocked_time_conflicts(
            self.blocked_repo,
            organization_id,
            time_range,
            exclude_block_id=exclude_block_id,
            full_threshold=self.full_threshold,
        )

    async def check_conflicts(
        self,
        organization_id: str,
        time_range: TimeRange,
        learner_id: str | None = None,
        lesson_id: str | None = None,
    ) -> LessonConflictReport:
        return await check_lesson_conflicts(
            self.blocked_repo,
            self.lesson_repo,
            organization_id,
            time_range,
            learner_id=learner_id,
            exclude_lesson_id=lesson_id,
            full_threshold=self.full_threshold,
        )

    async def check_batch(
        self, organization_id: str, ranges: list[TimeRange]
    ) -> list[BatchConflictItem]:
        return await check_batch_conflicts(
            self.blocked_repo, organization_id, ranges, full_threshold=self.full_threshold
        )

    # ------------------------------------------------------------------
    # Validation and write-back
    # ------------------------------------------------------------------

    async def validate_before_save(
        self,
        organization_id: str,
        candidate_range: TimeRange,
        learner_id: str | None = None,
        lesson_id: str | None = None,
        options: ValidationOptions | None = None,
    ) -> ValidationResult:
        """Decide whether a lesson may be saved at *candidate_range*.

        Callers must check ``should_proceed``; a rejection is not raised.
        Repository failures propagate.
        """
        report = await self.check_conflicts(
            organization_id, candidate_range, learner_id=learner_id, lesson_id=lesson_id
        )
        result = evaluate(report, options)
        if not result.should_proceed:
            logger.info(
                "Rejected lesson slot %s - %s for organization %s: %s",
                candidate_range.start.isoformat(),
                candidate_range.end.isoformat(),
                organization_id,
                result.error,
            )
        return result

    async def update_conflict_status(
        self,
        lesson_id: str,
        organization_id: str,
        time_range: TimeRange,
        learner_id: str | None = None,
    ) -> UpdateResult:
        return await update_conflict_status(
            self.blocked_repo,
            self.lesson_repo,
            lesson_id,
            organization_id,
            time_range,
            learner_id=learner_id,
            full_threshold=self.full_threshold,
        )

    # ------------------------------------------------------------------
    # Batch scans
    # ------------------------------------------------------------------

    async def scan_and_update_all(
        self,
        organization_id: str,
        after_date: datetime | None = None,
        learner_id: str | None = None,
    ) -> ScanResult:
        return await self._scan(
            LessonFilter(
                organization_id=organization_id,
                after_date=after_date,
                learner_id=learner_id,
            )
        )

    async def batch_update(self, organization_id: str, lesson_ids: list[str]) -> ScanResult:
        return await self._scan(
            LessonFilter(organization_id=organization_id, lesson_ids=lesson_ids)
        )

    async def _scan(self, lesson_filter: LessonFilter) -> ScanResult:
        return await scan_and_update(
            self.blocked_repo,
            self.lesson_repo,
            lesson_filter,
            concurrency=self.scan_concurrency,
            full_threshold=self.full_threshold,
        )

    async def conflict_summary(
        self, organization_id: str, now: datetime, limit: int = 10
    ) -> ConflictSummary:
        return await summarize_conflicts(self.lesson_repo, organization_id, now, limit=limit)

    # ------------------------------------------------------------------
    # Slot search
    # ------------------------------------------------------------------

    async def find_available_slots(
        self,
        organization_id: str,
        date_range: DateRange,
        duration_minutes: int = config.SLOT_DURATION_MINUTES,
        options: SlotSearchOptions | None = None,
    ) -> list[TimeRange]:
        return await find_available_slots(
            self.blocked_repo,
            organization_id,
            date_range,
            duration_minutes,
            options,
            timezone=self.timezone,
        )
