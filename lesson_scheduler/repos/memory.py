"""In-memory repositories for blocked time slots and lessons."""

from __future__ import annotations

from lesson_scheduler.domain.errors import LessonNotFoundError
from lesson_scheduler.domain.models import (
    BlockedSlot,
    ConflictFields,
    Lesson,
    LessonFilter,
    TimeRange,
)
from lesson_scheduler.services.intervals import overlaps


class BlockedSlotRepository:
    """Dict-backed store for BlockedSlot instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, BlockedSlot] = {}

    def add(self, slot: BlockedSlot) -> None:
        self._store[slot.id] = slot

    def get(self, slot_id: str) -> BlockedSlot | None:
        return self._store.get(slot_id)

    def deactivate(self, slot_id: str) -> None:
        slot = self._store.get(slot_id)
        if slot is not None:
            slot.is_active = False

    async def find_overlapping(
        self,
        organization_id: str,
        time_range: TimeRange,
        exclude_id: str | None = None,
    ) -> list[BlockedSlot]:
        return sorted(
            (
                slot
                for slot in self._store.values()
                if slot.organization_id == organization_id
                and slot.is_active
                and slot.id != exclude_id
                and overlaps(time_range, slot)
            ),
            key=lambda s: s.start,
        )


class LessonRepository:
    """Dict-backed store for Lesson instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Lesson] = {}

    def add(self, lesson: Lesson) -> None:
        self._store[lesson.id] = lesson

    def get(self, lesson_id: str) -> Lesson | None:
        return self._store.get(lesson_id)

    def list_all(self) -> list[Lesson]:
        return list(self._store.values())

    async def find_overlapping(
        self,
        organization_id: str,
        time_range: TimeRange,
        learner_id: str | None = None,
        exclude_lesson_id: str | None = None,
    ) -> list[Lesson]:
        return sorted(
            (
                lesson
                for lesson in self._store.values()
                if lesson.organization_id == organization_id
                and lesson.id != exclude_lesson_id
                and (learner_id is None or lesson.learner_id == learner_id)
                and overlaps(time_range, lesson)
            ),
            key=lambda lesson: lesson.start,
        )

    async def update_conflict_fields(
        self, lesson_id: str, organization_id: str, fields: ConflictFields
    ) -> None:
        lesson = self._store.get(lesson_id)
        if lesson is None or lesson.organization_id != organization_id:
            raise LessonNotFoundError(lesson_id, organization_id)
        lesson.has_conflict = fields.has_conflict
        lesson.conflict_severity = fields.conflict_severity
        lesson.conflicting_blocked_ids = list(fields.conflicting_blocked_ids)
        lesson.conflicting_lesson_ids = list(fields.conflicting_lesson_ids)

    async def find_by_filter(self, lesson_filter: LessonFilter) -> list[Lesson]:
        lessons = [
            lesson
            for lesson in self._store.values()
            if lesson.organization_id == lesson_filter.organization_id
        ]
        if lesson_filter.after_date is not None:
            lessons = [lesson for lesson in lessons if lesson.start >= lesson_filter.after_date]
        if lesson_filter.learner_id is not None:
            lessons = [lesson for lesson in lessons if lesson.learner_id == lesson_filter.learner_id]
        if lesson_filter.lesson_ids is not None:
            wanted = set(lesson_filter.lesson_ids)
            lessons = [lesson for lesson in lessons if lesson.id in wanted]
        if lesson_filter.has_conflict is not None:
            lessons = [lesson for lesson in lessons if lesson.has_conflict == lesson_filter.has_conflict]
        return sorted(lessons, key=lambda lesson: lesson.start)
