"""Service for finding open lesson slots between blocked time."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo

from dateutil import tz
from dateutil.rrule import DAILY, rrule

from lesson_scheduler import config
from lesson_scheduler.domain.errors import InvalidRangeError
from lesson_scheduler.domain.models import DateRange, SlotSearchOptions, TimeRange
from lesson_scheduler.repos.ports import BlockedSlotRepository
from lesson_scheduler.services.intervals import overlaps


def _day_start(day: date, zone: tzinfo) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=zone)


def _check_options(duration_minutes: int, options: SlotSearchOptions) -> None:
    if duration_minutes <= 0:
        raise InvalidRangeError("Slot duration must be a positive number of minutes")
    if options.start_hour >= options.end_hour:
        raise InvalidRangeError(
            f"start_hour ({options.start_hour}) must be before end_hour ({options.end_hour})"
        )


async def find_available_slots(
    blocked_repo: BlockedSlotRepository,
    organization_id: str,
    date_range: DateRange,
    duration_minutes: int,
    options: SlotSearchOptions | None = None,
    timezone: tzinfo | None = None,
) -> list[TimeRange]:
    """Return hourly candidate slots that avoid every active blocked slot.

    One candidate starts on each whole hour of the business window
    ``[start_hour, end_hour)`` of every non-excluded day in *date_range*
    (inclusive).  Candidates running past ``end_hour`` are dropped.  This is
    a coarse grid search, not an optimal packing.
    """
    options = options or SlotSearchOptions()
    _check_options(duration_minutes, options)
    zone = timezone or tz.gettz(config.SCHEDULING_TIMEZONE) or tz.UTC

    window = TimeRange(
        start=_day_start(date_range.start_date, zone),
        end=_day_start(date_range.end_date, zone) + timedelta(days=1),
    )
    blocks = await blocked_repo.find_overlapping(organization_id, window)

    length = timedelta(minutes=duration_minutes)
    available: list[TimeRange] = []
    days = rrule(
        DAILY,
        dtstart=datetime.combine(date_range.start_date, datetime.min.time()),
        until=datetime.combine(date_range.end_date, datetime.min.time()),
    )
    for day in days:
        if day.weekday() in options.exclude_weekdays:
            continue

        day_start = _day_start(day.date(), zone)
        closing = day_start + timedelta(hours=options.end_hour)
        for hour in range(options.start_hour, options.end_hour):
            slot_start = day_start + timedelta(hours=hour)
            slot_end = slot_start + length
            if slot_end > closing:
                break
            slot = TimeRange(start=slot_start, end=slot_end)
            if not any(overlaps(slot, block) for block in blocks):
                available.append(slot)

    return available


def group_slots_by_date(slots: list[TimeRange]) -> dict[str, list[TimeRange]]:
    grouped: dict[str, list[TimeRange]] = defaultdict(list)
    for slot in slots:
        grouped[slot.start.date().isoformat()].append(slot)
    return dict(grouped)
