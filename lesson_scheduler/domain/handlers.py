"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

import logging

from lesson_scheduler.domain.bus import EventBus
from lesson_scheduler.domain.events import (
    BlockedTimeSynced,
    LessonConflictsUpdated,
    LessonSaved,
)
from lesson_scheduler.domain.models import LessonFilter
from lesson_scheduler.repos.ports import LessonRepository
from lesson_scheduler.services.engine import SchedulingEngine

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Keeps stored lesson conflict flags in step with lesson and blocked-time changes."""

    def __init__(
        self,
        bus: EventBus,
        engine: SchedulingEngine,
        lesson_repo: LessonRepository,
    ) -> None:
        self.bus = bus
        self.engine = engine
        self.lesson_repo = lesson_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(LessonSaved, self.on_lesson_saved)
        self.bus.subscribe(BlockedTimeSynced, self.on_blocked_time_synced)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def on_lesson_saved(self, event: LessonSaved) -> None:
        matches = await self.lesson_repo.find_by_filter(
            LessonFilter(organization_id=event.organization_id, lesson_ids=[event.lesson_id])
        )
        if not matches:
            return
        stored = matches[0]

        result = await self.engine.update_conflict_status(
            stored.id,
            event.organization_id,
            stored.time_range,
            learner_id=stored.learner_id,
        )
        if not result.success:
            logger.warning(
                "Lesson %s saved but conflict flags not updated: %s",
                stored.id,
                result.error,
            )
            return

        await self.bus.publish(
            LessonConflictsUpdated(
                lesson_id=stored.id,
                organization_id=event.organization_id,
                has_conflict=result.has_conflict,
            )
        )

    async def on_blocked_time_synced(self, event: BlockedTimeSynced) -> None:
        result = await self.engine.scan_and_update_all(event.organization_id)
        if result.errors:
            logger.error(
                "Lesson rescan for organization %s finished with %d errors",
                event.organization_id,
                len(result.errors),
            )
