"""Tests for the event bus lifecycle — lesson saves and blocked-time syncs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from lesson_scheduler.domain.bus import EventBus
from lesson_scheduler.domain.events import (
    BlockedTimeSynced,
    LessonConflictsUpdated,
    LessonSaved,
)
from lesson_scheduler.domain.handlers import HandlerRegistry
from lesson_scheduler.domain.models import BlockedSlot, ConflictSeverity, Lesson
from lesson_scheduler.repos.memory import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.engine import SchedulingEngine

pytestmark = pytest.mark.anyio

ORG = "org-x"
_NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh bus + repos + registry for each test."""
    bus = EventBus()
    blocked_repo = BlockedSlotRepository()
    lesson_repo = LessonRepository()
    engine = SchedulingEngine(blocked_repo, lesson_repo)
    registry = HandlerRegistry(bus=bus, engine=engine, lesson_repo=lesson_repo)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.blocked_repo = blocked_repo
    e.lesson_repo = lesson_repo
    e.engine = engine
    e.registry = registry
    e.published = []

    async def _record(event):
        e.published.append(event)

    bus.subscribe(LessonConflictsUpdated, _record)
    return e


def _make_lesson(**overrides) -> Lesson:
    defaults = dict(
        organization_id=ORG,
        learner_id="learner-l",
        title="Science",
        start=_NOW + timedelta(days=1),
        end=_NOW + timedelta(days=1, hours=1),
    )
    defaults.update(overrides)
    return Lesson(**defaults)


def _make_block(**overrides) -> BlockedSlot:
    defaults = dict(
        organization_id=ORG,
        title="Quarterly review",
        source_type="outlook",
        start=_NOW + timedelta(days=1),
        end=_NOW + timedelta(days=1, hours=2),
    )
    defaults.update(overrides)
    return BlockedSlot(**defaults)


async def test_subscribers_run_in_registration_order():
    bus = EventBus()
    calls = []

    async def first(event):
        calls.append(("first", event.organization_id))

    async def second(event):
        calls.append(("second", event.organization_id))

    bus.subscribe(BlockedTimeSynced, first)
    bus.subscribe(BlockedTimeSynced, second)
    await bus.publish(BlockedTimeSynced(organization_id=ORG))
    await bus.publish(LessonSaved(lesson_id="x", organization_id=ORG))

    assert calls == [("first", ORG), ("second", ORG)]


async def test_lesson_saved_flags_conflicts(env):
    block = _make_block()
    env.blocked_repo.add(block)
    lesson = _make_lesson()
    env.lesson_repo.add(lesson)

    await env.bus.publish(LessonSaved(lesson_id=lesson.id, organization_id=ORG))

    assert lesson.has_conflict is True
    assert lesson.conflict_severity == ConflictSeverity.FULL
    assert lesson.conflicting_blocked_ids == [block.id]
    assert env.published == [
        LessonConflictsUpdated(lesson_id=lesson.id, organization_id=ORG, has_conflict=True)
    ]


async def test_lesson_saved_for_unknown_lesson_is_ignored(env):
    await env.bus.publish(LessonSaved(lesson_id="missing", organization_id=ORG))

    assert env.published == []


async def test_lesson_saved_from_another_organization_is_ignored(env):
    env.blocked_repo.add(_make_block())
    lesson = _make_lesson()
    env.lesson_repo.add(lesson)

    await env.bus.publish(LessonSaved(lesson_id=lesson.id, organization_id="org-y"))

    assert lesson.has_conflict is False
    assert env.published == []


async def test_lesson_saved_uses_async_repository_lookup(env):
    lesson = _make_lesson()
    env.lesson_repo.add(lesson)

    with patch.object(env.lesson_repo, "get", side_effect=AssertionError("sync lookup")):
        await env.bus.publish(LessonSaved(lesson_id=lesson.id, organization_id=ORG))

    assert env.published == [
        LessonConflictsUpdated(lesson_id=lesson.id, organization_id=ORG, has_conflict=False)
    ]


async def test_blocked_time_sync_rescans_lessons(env):
    lesson = _make_lesson()
    env.lesson_repo.add(lesson)
    await env.bus.publish(LessonSaved(lesson_id=lesson.id, organization_id=ORG))
    assert lesson.has_conflict is False

    env.blocked_repo.add(_make_block(end=_NOW + timedelta(days=1, minutes=20)))
    await env.bus.publish(BlockedTimeSynced(organization_id=ORG))

    assert lesson.has_conflict is True
    assert lesson.conflict_severity == ConflictSeverity.PARTIAL


async def test_blocked_time_removal_clears_flags(env):
    block = _make_block()
    env.blocked_repo.add(block)
    lesson = _make_lesson()
    env.lesson_repo.add(lesson)
    await env.bus.publish(LessonSaved(lesson_id=lesson.id, organization_id=ORG))
    assert lesson.has_conflict is True

    env.blocked_repo.deactivate(block.id)
    await env.bus.publish(BlockedTimeSynced(organization_id=ORG))

    assert lesson.has_conflict is False
    assert lesson.conflict_severity is None
    assert lesson.conflicting_blocked_ids == []


async def test_sync_only_touches_its_organization(env):
    other = _make_lesson(organization_id="org-y")
    env.lesson_repo.add(other)
    env.blocked_repo.add(_make_block(organization_id="org-y"))

    await env.bus.publish(BlockedTimeSynced(organization_id=ORG))

    assert other.has_conflict is False
