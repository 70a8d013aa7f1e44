"""Domain events emitted around lesson scheduling."""

from __future__ import annotations

from pydantic import BaseModel


class LessonSaved(BaseModel):
    """Fired after a lesson is created or its time range changes."""

    lesson_id: str
    organization_id: str


class BlockedTimeSynced(BaseModel):
    """Fired when an organization's blocked time slots have been (re-)synced."""

    organization_id: str


class LessonConflictsUpdated(BaseModel):
    """Fired after a lesson's conflict flags have been written back."""

    lesson_id: str
    organization_id: str
    has_conflict: bool
