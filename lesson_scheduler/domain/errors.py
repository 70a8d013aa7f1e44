"""Exceptions raised by the scheduling engine and its repositories."""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for all scheduling engine failures."""


class InvalidRangeError(SchedulingError, ValueError):
    """A time range with ``start >= end`` (or otherwise unusable bounds)."""


class RepositoryError(SchedulingError):
    """A blocked-slot or lesson store operation failed."""


class RepositoryUnavailableError(RepositoryError):
    """The backing store could not be reached."""


class LessonNotFoundError(RepositoryError):
    def __init__(self, lesson_id: str, organization_id: str) -> None:
        super().__init__(
            f"Lesson {lesson_id} not found in organization {organization_id}"
        )
        self.lesson_id = lesson_id
        self.organization_id = organization_id
