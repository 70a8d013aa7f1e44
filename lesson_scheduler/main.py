"""FastAPI application — HTTP wrapper around the lesson scheduling engine."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from lesson_scheduler import config
from lesson_scheduler.domain.bus import EventBus
from lesson_scheduler.domain.errors import (
    InvalidRangeError,
    LessonNotFoundError,
    RepositoryUnavailableError,
)
from lesson_scheduler.domain.events import BlockedTimeSynced, LessonSaved
from lesson_scheduler.domain.handlers import HandlerRegistry
from lesson_scheduler.domain.models import (
    BatchConflictItem,
    BlockedSlot,
    BlockedSlotCreateRequest,
    ConflictSummary,
    DateRange,
    Lesson,
    LessonCreateRequest,
    LessonResponse,
    LessonUpdateRequest,
    ScanRequest,
    SlotSearchOptions,
    TimeRange,
    ValidateRequest,
    ValidateResponse,
    ValidationOptions,
)
from lesson_scheduler.repos.memory import BlockedSlotRepository, LessonRepository
from lesson_scheduler.services.dates import parse_date_bound
from lesson_scheduler.services.engine import SchedulingEngine
from lesson_scheduler.services.intervals import require_valid_range
from lesson_scheduler.services.slots import group_slots_by_date
from lesson_scheduler.services.validation import summarize

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Lesson Scheduling Conflict Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
blocked_slot_repo = BlockedSlotRepository()
lesson_repo = LessonRepository()
engine = SchedulingEngine(blocked_slot_repo, lesson_repo)

handler_registry = HandlerRegistry(bus=event_bus, engine=engine, lesson_repo=lesson_repo)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(InvalidRangeError)
async def _invalid_range(request: Request, exc: InvalidRangeError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(LessonNotFoundError)
async def _lesson_not_found(request: Request, exc: LessonNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Lesson not found"})


@app.exception_handler(RepositoryUnavailableError)
async def _repository_unavailable(
    request: Request, exc: RepositoryUnavailableError
) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} - Repository unavailable: {exc}")
    return JSONResponse(
        status_code=503, content={"detail": "Scheduling data is temporarily unavailable"}
    )


def _time_range(start: datetime, end: datetime) -> TimeRange:
    candidate = TimeRange.model_construct(start=start, end=end)
    require_valid_range(candidate)
    return candidate


def _owned_lesson(lesson_id: str, organization_id: str) -> Lesson:
    lesson = lesson_repo.get(lesson_id)
    if lesson is None or lesson.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


# ── Conflict checks ───────────────────────────────────────────────────


@app.post("/calendar/conflicts/validate", response_model=ValidateResponse)
async def validate_lesson_time(
    payload: ValidateRequest,
    x_organization_id: str = Header(...),
) -> ValidateResponse:
    """Check a lesson time against blocked time slots and other lessons."""
    report = await engine.check_conflicts(
        x_organization_id,
        _time_range(payload.start, payload.end),
        learner_id=payload.learner_id,
        lesson_id=payload.lesson_id,
    )
    return ValidateResponse(
        valid=report.can_schedule,
        has_conflict=report.has_conflict,
        can_schedule=report.can_schedule,
        blocked_time=report.blocked_time_conflicts,
        lessons=report.lesson_conflicts,
        warnings=report.warnings,
        summary=summarize(report),
    )


@app.post("/calendar/conflicts/check-batch", response_model=list[BatchConflictItem])
async def check_batch(
    payload: list[ValidateRequest],
    x_organization_id: str = Header(...),
) -> list[BatchConflictItem]:
    """Check several concrete lesson times against blocked time at once."""
    ranges = [_time_range(item.start, item.end) for item in payload]
    return await engine.check_batch(x_organization_id, ranges)


# ── Lessons ───────────────────────────────────────────────────────────


@app.post("/lessons", response_model=LessonResponse, status_code=201)
async def create_lesson(
    payload: LessonCreateRequest,
    x_organization_id: str = Header(...),
) -> LessonResponse:
    """Validate a new lesson's time, then store it and flag any conflicts."""
    validation = await engine.validate_before_save(
        x_organization_id,
        _time_range(payload.start, payload.end),
        learner_id=payload.learner_id,
        options=ValidationOptions(
            allow_partial_blocked_conflicts=payload.allow_partial_blocked_conflicts,
            allow_lesson_conflicts=payload.allow_lesson_conflicts,
        ),
    )
    if not validation.should_proceed:
        raise HTTPException(
            status_code=409,
            detail={"error": validation.error, "warnings": validation.warnings},
        )

    lesson = Lesson(
        organization_id=x_organization_id,
        learner_id=payload.learner_id,
        title=payload.title,
        start=payload.start,
        end=payload.end,
    )
    lesson_repo.add(lesson)
    await event_bus.publish(
        LessonSaved(lesson_id=lesson.id, organization_id=x_organization_id)
    )
    return LessonResponse(lesson=lesson, warnings=validation.warnings)


@app.patch("/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: str,
    payload: LessonUpdateRequest,
    x_organization_id: str = Header(...),
) -> LessonResponse:
    """Move a lesson to a new time, re-validating it without its old self."""
    lesson = _owned_lesson(lesson_id, x_organization_id)
    validation = await engine.validate_before_save(
        x_organization_id,
        _time_range(payload.start, payload.end),
        learner_id=lesson.learner_id,
        lesson_id=lesson.id,
        options=ValidationOptions(
            allow_partial_blocked_conflicts=payload.allow_partial_blocked_conflicts,
            allow_lesson_conflicts=payload.allow_lesson_conflicts,
        ),
    )
    if not validation.should_proceed:
        raise HTTPException(
            status_code=409,
            detail={"error": validation.error, "warnings": validation.warnings},
        )

    lesson.start = payload.start
    lesson.end = payload.end
    if payload.title is not None:
        lesson.title = payload.title
    await event_bus.publish(
        LessonSaved(lesson_id=lesson.id, organization_id=x_organization_id)
    )
    return LessonResponse(lesson=lesson, warnings=validation.warnings)


@app.get("/lessons/{lesson_id}", response_model=Lesson)
async def get_lesson(lesson_id: str, x_organization_id: str = Header(...)) -> Lesson:
    return _owned_lesson(lesson_id, x_organization_id)


# ── Blocked time (written by the calendar sync) ───────────────────────


@app.post("/calendar/blocked-slots", response_model=BlockedSlot, status_code=201)
async def add_blocked_slot(
    payload: BlockedSlotCreateRequest,
    x_organization_id: str = Header(...),
) -> BlockedSlot:
    """Record a blocked time slot and re-flag the organization's lessons."""
    _time_range(payload.start, payload.end)
    slot = BlockedSlot(organization_id=x_organization_id, **payload.model_dump())
    blocked_slot_repo.add(slot)
    await event_bus.publish(BlockedTimeSynced(organization_id=x_organization_id))
    return slot


@app.delete("/calendar/blocked-slots/{slot_id}", status_code=200)
async def deactivate_blocked_slot(
    slot_id: str, x_organization_id: str = Header(...)
) -> dict:
    slot = blocked_slot_repo.get(slot_id)
    if slot is None or slot.organization_id != x_organization_id:
        raise HTTPException(status_code=404, detail="Blocked slot not found")
    blocked_slot_repo.deactivate(slot_id)
    await event_bus.publish(BlockedTimeSynced(organization_id=x_organization_id))
    return {"status": "deactivated"}


# ── Scans and summaries ───────────────────────────────────────────────


@app.post("/calendar/conflicts/scan-lessons")
async def scan_lessons(
    payload: ScanRequest | None = None,
    x_organization_id: str = Header(...),
) -> dict:
    """Re-check stored lessons and update their conflict flags.

    Accepts an optional ``after_date`` (ISO or e.g. "today"), ``learner_id``
    or an explicit list of ``lesson_ids``.
    """
    payload = payload or ScanRequest()
    if payload.lesson_ids is not None:
        results = await engine.batch_update(x_organization_id, payload.lesson_ids)
    else:
        results = await engine.scan_and_update_all(
            x_organization_id,
            after_date=parse_date_bound(payload.after_date),
            learner_id=payload.learner_id,
        )

    if results.errors:
        logger.error(f"Lesson scan completed with errors: {results.errors}")

    return {
        "success": True,
        "summary": {
            "scanned": results.scanned,
            "updated": results.updated,
            "conflicts_found": results.conflicts_found,
            "errors": len(results.errors),
        },
        "errors": [e.model_dump() for e in results.errors],
    }


@app.get("/calendar/conflicts/scan-lessons", response_model=ConflictSummary)
async def conflict_summary(x_organization_id: str = Header(...)) -> ConflictSummary:
    """Summarize lessons currently flagged as conflicting."""
    return await engine.conflict_summary(x_organization_id, datetime.now(timezone.utc))


@app.get("/calendar/conflicts/available-slots")
async def available_slots(
    start_date: date,
    end_date: date,
    duration: int = Query(default=config.SLOT_DURATION_MINUTES, gt=0),
    start_hour: int = Query(default=config.SLOT_START_HOUR, ge=0, le=24),
    end_hour: int = Query(default=config.SLOT_END_HOUR, ge=0, le=24),
    exclude_weekends: bool = True,
    x_organization_id: str = Header(...),
) -> dict:
    """Find open slots between start_date and end_date (inclusive)."""
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    slots = await engine.find_available_slots(
        x_organization_id,
        DateRange(start_date=start_date, end_date=end_date),
        duration,
        SlotSearchOptions(
            start_hour=start_hour,
            end_hour=end_hour,
            exclude_weekdays=(5, 6) if exclude_weekends else (),
        ),
    )
    return {
        "total_slots": len(slots),
        "slots": slots,
        "slots_by_date": group_slots_by_date(slots),
        "parameters": {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "duration": duration,
            "start_hour": start_hour,
            "end_hour": end_hour,
            "exclude_weekends": exclude_weekends,
        },
    }
