"""Repository interfaces the scheduling engine depends on.

Implementations are injected into the engine; any store (SQL, HTTP API,
in-memory) works as long as it honours these contracts.  Failures to reach
the store must surface as ``RepositoryError`` subclasses.
"""

from __future__ import annotations

from typing import Protocol

from lesson_scheduler.domain.models import (
    BlockedSlot,
    ConflictFields,
    Lesson,
    LessonFilter,
    TimeRange,
)


class BlockedSlotRepository(Protocol):
    async def find_overlapping(
        self,
        organization_id: str,
        time_range: TimeRange,
        exclude_id: str | None = None,
    ) -> list[BlockedSlot]:
        """Return active slots of the organization overlapping *time_range*."""
        ...


class LessonRepository(Protocol):
    async def find_overlapping(
        self,
        organization_id: str,
        time_range: TimeRange,
        learner_id: str | None = None,
        exclude_lesson_id: str | None = None,
    ) -> list[Lesson]:
        ...

    async def update_conflict_fields(
        self, lesson_id: str, organization_id: str, fields: ConflictFields
    ) -> None:
        ...

    async def find_by_filter(self, lesson_filter: LessonFilter) -> list[Lesson]:
        ...
