"""Domain models for the lesson scheduling conflict engine."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import StrEnum
from typing import Annotated

from dateutil import tz
from pydantic import AfterValidator, BaseModel, Field, model_validator

from lesson_scheduler import config


class ConflictSeverity(StrEnum):
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"


def _new_id() -> str:
    return str(uuid.uuid4())


def _assume_scheduling_zone(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=tz.gettz(config.SCHEDULING_TIMEZONE) or tz.UTC)
    return value


# Offset-less timestamps are read as wall-clock time in the scheduling timezone
ScheduleDatetime = Annotated[datetime, AfterValidator(_assume_scheduling_zone)]


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class TimeRange(BaseModel):
    start: ScheduleDatetime
    end: ScheduleDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> TimeRange:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class BlockedSlot(BaseModel):
    """An externally sourced busy interval (e.g. an imported work event).

    Owned by the calendar-sync collaborator; the engine only reads it.
    """

    id: str = Field(default_factory=_new_id)
    organization_id: str
    start: ScheduleDatetime
    end: ScheduleDatetime
    title: str
    source_type: str = "manual"
    description: str | None = None
    is_active: bool = True


class Lesson(BaseModel):
    id: str = Field(default_factory=_new_id)
    organization_id: str
    learner_id: str | None = None
    start: ScheduleDatetime
    end: ScheduleDatetime
    title: str
    # Derived conflict state, written only by the conflict status updater
    has_conflict: bool = False
    conflict_severity: ConflictSeverity | None = None
    conflicting_blocked_ids: list[str] = Field(default_factory=list)
    conflicting_lesson_ids: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _end_after_start(self) -> Lesson:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


class ConflictFields(BaseModel):
    """Write-back payload for a lesson's derived conflict state."""

    has_conflict: bool = False
    conflict_severity: ConflictSeverity | None = None
    conflicting_blocked_ids: list[str] = Field(default_factory=list)
    conflicting_lesson_ids: list[str] = Field(default_factory=list)


class LessonFilter(BaseModel):
    organization_id: str
    after_date: ScheduleDatetime | None = None
    learner_id: str | None = None
    lesson_ids: list[str] | None = None
    has_conflict: bool | None = None


# ---------------------------------------------------------------------------
# Conflict detection results
# ---------------------------------------------------------------------------


class BlockingSlotSummary(BlockedSlot):
    """A blocked slot plus how much of the queried range it covers."""

    overlap_minutes: float
    overlap_percentage: int


class ConflictDetail(BaseModel):
    has_conflict: bool = False
    severity: ConflictSeverity = ConflictSeverity.NONE
    blocking_slots: list[BlockingSlotSummary] = Field(default_factory=list)
    message: str = ""


class LessonConflictReport(BaseModel):
    has_conflict: bool
    blocked_time_conflicts: ConflictDetail
    lesson_conflicts: list[Lesson] = Field(default_factory=list)
    can_schedule: bool
    warnings: list[str] = Field(default_factory=list)


class BatchConflictItem(BaseModel):
    index: int
    has_conflict: bool
    conflict_details: ConflictDetail


class ValidationOptions(BaseModel):
    allow_partial_blocked_conflicts: bool = config.ALLOW_PARTIAL_BLOCKED_CONFLICTS
    allow_lesson_conflicts: bool = config.ALLOW_LESSON_CONFLICTS


class ValidationResult(BaseModel):
    can_schedule: bool
    should_proceed: bool
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)
    conflict_details: LessonConflictReport | None = None


class UpdateResult(BaseModel):
    success: bool
    error: str | None = None
    has_conflict: bool = False


class ScanError(BaseModel):
    lesson_id: str
    error: str


class ScanResult(BaseModel):
    scanned: int = 0
    updated: int = 0
    conflicts_found: int = 0
    errors: list[ScanError] = Field(default_factory=list)


class ConflictSummary(BaseModel):
    total_conflicts: int
    full_conflicts: int
    partial_conflicts: int
    recent_conflicts: list[Lesson] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Available-slot search
# ---------------------------------------------------------------------------


class DateRange(BaseModel):
    """Inclusive range of calendar days."""

    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _end_not_before_start(self) -> DateRange:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SlotSearchOptions(BaseModel):
    start_hour: int = Field(default=config.SLOT_START_HOUR, ge=0, le=24)
    end_hour: int = Field(default=config.SLOT_END_HOUR, ge=0, le=24)
    exclude_weekdays: tuple[int, ...] = config.SLOT_EXCLUDED_WEEKDAYS


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class ValidateRequest(BaseModel):
    start: ScheduleDatetime
    end: ScheduleDatetime
    learner_id: str | None = None
    lesson_id: str | None = None


class ValidateResponse(BaseModel):
    valid: bool
    has_conflict: bool
    can_schedule: bool
    blocked_time: ConflictDetail
    lessons: list[Lesson]
    warnings: list[str]
    summary: str


class LessonCreateRequest(BaseModel):
    title: str
    start: ScheduleDatetime
    end: ScheduleDatetime
    learner_id: str | None = None
    allow_partial_blocked_conflicts: bool = config.ALLOW_PARTIAL_BLOCKED_CONFLICTS
    allow_lesson_conflicts: bool = config.ALLOW_LESSON_CONFLICTS


class LessonUpdateRequest(BaseModel):
    title: str | None = None
    start: ScheduleDatetime
    end: ScheduleDatetime
    allow_partial_blocked_conflicts: bool = config.ALLOW_PARTIAL_BLOCKED_CONFLICTS
    allow_lesson_conflicts: bool = config.ALLOW_LESSON_CONFLICTS


class LessonResponse(BaseModel):
    lesson: Lesson
    warnings: list[str] = Field(default_factory=list)


class BlockedSlotCreateRequest(BaseModel):
    title: str
    start: ScheduleDatetime
    end: ScheduleDatetime
    source_type: str = "manual"
    description: str | None = None


class ScanRequest(BaseModel):
    after_date: str | None = None
    learner_id: str | None = None
    lesson_ids: list[str] | None = None
