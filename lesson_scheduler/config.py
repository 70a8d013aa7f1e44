"""Runtime settings for the scheduling engine, read from the environment."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_weekdays(name: str, default: str) -> tuple[int, ...]:
    raw = os.getenv(name, default)
    return tuple(int(part) for part in raw.split(",") if part.strip())


# Overlap percentage at or above which a blocked slot makes a range "full"
FULL_CONFLICT_THRESHOLD = int(os.getenv("FULL_CONFLICT_THRESHOLD", "90"))

# Validation policy defaults (full blocked-time conflicts are never allowed)
ALLOW_PARTIAL_BLOCKED_CONFLICTS = _env_bool("ALLOW_PARTIAL_BLOCKED_CONFLICTS", True)
ALLOW_LESSON_CONFLICTS = _env_bool("ALLOW_LESSON_CONFLICTS", False)

# Available-slot search defaults
SLOT_START_HOUR = int(os.getenv("SLOT_START_HOUR", "8"))
SLOT_END_HOUR = int(os.getenv("SLOT_END_HOUR", "17"))
SLOT_DURATION_MINUTES = int(os.getenv("SLOT_DURATION_MINUTES", "60"))
# Python weekday numbers, Monday=0 .. Sunday=6
SLOT_EXCLUDED_WEEKDAYS = _env_weekdays("SLOT_EXCLUDED_WEEKDAYS", "5,6")
SCHEDULING_TIMEZONE = os.getenv("SCHEDULING_TIMEZONE", "UTC")

# Number of lessons the batch scanner updates at once (1 = sequential)
SCAN_CONCURRENCY = max(1, int(os.getenv("SCAN_CONCURRENCY", "1")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
