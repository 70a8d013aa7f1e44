"""Tests for writing a stored lesson's conflict flags back."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from lesson_scheduler.domain.errors import RepositoryUnavailableError
from lesson_scheduler.domain.models import BlockedSlot, ConflictSeverity, Lesson
from lesson_scheduler.repos.memory import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.status import update_conflict_status

pytestmark = pytest.mark.anyio

ORG = "org-x"
_DAY = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _at(hour: int, minute: int = 0) -> datetime:
    return _DAY + timedelta(hours=hour, minutes=minute)


@pytest.fixture()
def repos():
    return BlockedSlotRepository(), LessonRepository()


def _stored_lesson(lesson_repo: LessonRepository, start: datetime, end: datetime, **kw) -> Lesson:
    lesson = Lesson(organization_id=ORG, learner_id="learner-l", title="Reading", start=start, end=end, **kw)
    lesson_repo.add(lesson)
    return lesson


def _snapshot(lesson: Lesson) -> tuple:
    return (
        lesson.has_conflict,
        lesson.conflict_severity,
        lesson.conflicting_blocked_ids,
        lesson.conflicting_lesson_ids,
    )


async def _update(repos, lesson: Lesson):
    blocked_repo, lesson_repo = repos
    return await update_conflict_status(
        blocked_repo,
        lesson_repo,
        lesson.id,
        lesson.organization_id,
        lesson.time_range,
        learner_id=lesson.learner_id,
    )


async def test_writes_blocked_conflict_fields(repos):
    blocked_repo, lesson_repo = repos
    block = BlockedSlot(organization_id=ORG, start=_at(9, 30), end=_at(10), title="Standup")
    blocked_repo.add(block)
    lesson = _stored_lesson(lesson_repo, _at(9), _at(10))

    result = await _update(repos, lesson)

    assert result.success is True
    assert result.has_conflict is True
    assert lesson.has_conflict is True
    assert lesson.conflict_severity == ConflictSeverity.PARTIAL
    assert lesson.conflicting_blocked_ids == [block.id]
    assert lesson.conflicting_lesson_ids == []


async def test_lesson_only_conflict_is_stored_as_partial(repos):
    _, lesson_repo = repos
    other = _stored_lesson(lesson_repo, _at(9, 30), _at(10, 30))
    lesson = _stored_lesson(lesson_repo, _at(9), _at(10))

    await _update(repos, lesson)

    assert lesson.has_conflict is True
    assert lesson.conflict_severity == ConflictSeverity.PARTIAL
    assert lesson.conflicting_lesson_ids == [other.id]


async def test_lesson_never_conflicts_with_itself(repos):
    _, lesson_repo = repos
    lesson = _stored_lesson(lesson_repo, _at(9), _at(10))

    await _update(repos, lesson)

    assert lesson.has_conflict is False
    assert lesson.conflicting_lesson_ids == []


async def test_update_is_idempotent(repos):
    blocked_repo, lesson_repo = repos
    blocked_repo.add(BlockedSlot(organization_id=ORG, start=_at(8), end=_at(11), title="Offsite"))
    _stored_lesson(lesson_repo, _at(9, 30), _at(10, 30))
    lesson = _stored_lesson(lesson_repo, _at(9), _at(10))

    await _update(repos, lesson)
    first = _snapshot(lesson)
    await _update(repos, lesson)

    assert _snapshot(lesson) == first
    assert lesson.conflict_severity == ConflictSeverity.FULL


async def test_flags_cleared_when_conflicts_disappear(repos):
    blocked_repo, lesson_repo = repos
    block = BlockedSlot(organization_id=ORG, start=_at(9), end=_at(10), title="Call")
    blocked_repo.add(block)
    lesson = _stored_lesson(lesson_repo, _at(9), _at(10))
    await _update(repos, lesson)
    assert lesson.has_conflict is True

    blocked_repo.deactivate(block.id)
    await _update(repos, lesson)

    assert _snapshot(lesson) == (False, None, [], [])


async def test_write_failure_is_reported(repos):
    _, lesson_repo = repos
    lesson = _stored_lesson(lesson_repo, _at(9), _at(10))
    failing = AsyncMock(side_effect=RepositoryUnavailableError("write timed out"))

    with patch.object(lesson_repo, "update_conflict_fields", failing):
        result = await _update(repos, lesson)

    assert result.success is False
    assert result.error == "write timed out"


async def test_missing_lesson_is_reported(repos):
    blocked_repo, lesson_repo = repos
    ghost = Lesson(organization_id=ORG, title="Ghost", start=_at(9), end=_at(10))

    result = await update_conflict_status(
        blocked_repo, lesson_repo, ghost.id, ORG, ghost.time_range
    )

    assert result.success is False
    assert ghost.id in result.error
