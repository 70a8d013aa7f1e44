"""Scheduling policy applied to a lesson conflict report before saving."""

from __future__ import annotations

from lesson_scheduler.domain.models import (
    ConflictSeverity,
    LessonConflictReport,
    ValidationOptions,
    ValidationResult,
)
from lesson_scheduler.services.conflicts import FULLY_BLOCKED_WARNING

PARTIALLY_BLOCKED_ERROR = "Cannot schedule - time partially conflicts with blocked time"


def evaluate(
    report: LessonConflictReport, options: ValidationOptions | None = None
) -> ValidationResult:
    """Decide whether a lesson may be saved given its conflict report.

    A fully blocked range is always rejected; *options* only relax partial
    blocked-time overlaps and lesson double-booking.
    """
    options = options or ValidationOptions()
    severity = report.blocked_time_conflicts.severity
    lesson_count = len(report.lesson_conflicts)

    error: str | None = None

    if severity == ConflictSeverity.FULL:
        error = FULLY_BLOCKED_WARNING
    else:
        if severity == ConflictSeverity.PARTIAL and not options.allow_partial_blocked_conflicts:
            error = PARTIALLY_BLOCKED_ERROR

        if lesson_count > 0 and not options.allow_lesson_conflicts:
            if error:
                error = f"{error}; Also conflicts with existing lessons"
            else:
                error = f"Cannot schedule - conflicts with {lesson_count} existing lesson(s)"

    proceed = error is None
    return ValidationResult(
        can_schedule=proceed,
        should_proceed=proceed,
        error=error,
        warnings=list(report.warnings),
        conflict_details=report,
    )


def summarize(report: LessonConflictReport) -> str:
    """One-line, user-facing summary of a conflict report."""
    if report.can_schedule:
        if report.has_conflict:
            return "Can schedule with warnings"
        return "No conflicts - safe to schedule"

    reasons: list[str] = []
    if report.blocked_time_conflicts.severity == ConflictSeverity.FULL:
        reasons.append("time is completely blocked by work events")
    if report.lesson_conflicts:
        reasons.append(
            f"conflicts with {len(report.lesson_conflicts)} existing lesson(s)"
        )
    return f"Cannot schedule: {' and '.join(reasons)}"
