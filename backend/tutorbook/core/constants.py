"""Application-wide constants for the tutor booking engine."""

from __future__ import annotations

BRAND_NAME = "Tutorbook"

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

# Engine defaults (overridable through settings)
DEFAULT_MIN_NOTICE_HOURS = 12
DEFAULT_SLOT_STEP_MINUTES = 30
DEFAULT_TRIAL_CAP = 2
DEFAULT_AVAILABILITY_HORIZON_DAYS = 42
DEFAULT_SESSION_DURATION_MINUTES = 60

# Session duration constraints
MIN_SESSION_DURATION = 15  # minutes
MAX_SESSION_DURATION = 240  # minutes (4 hours)

# Recurrence step sizes
WEEKLY_STEP_DAYS = 7
BIWEEKLY_STEP_DAYS = 14

# Sessions created by one series booking request
MAX_SERIES_OCCURRENCES = 52

# Text constraints
MAX_STUDENT_NAME_LENGTH = 255
MAX_REASON_LENGTH = 255

# "HH:MM", 24-hour clock
TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"
