"""
Core enums for the tutor booking engine.

Session lifecycle status lives with the session model; the values here are
shared by schemas, services and routes.
"""

from enum import Enum


class RecurrenceFrequency(str, Enum):
    """How far apart consecutive sessions of a series are placed."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"


class RejectionCode(str, Enum):
    """
    Expected, recoverable outcomes of a booking operation.

    These are returned to callers as values; they are never raised by the
    engine itself.
    """

    INVALID_WINDOW = "INVALID_WINDOW"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    MODIFICATION_NOT_ALLOWED = "MODIFICATION_NOT_ALLOWED"
    SERIES_CONFLICT = "SERIES_CONFLICT"
    TRIAL_LIMIT_REACHED = "TRIAL_LIMIT_REACHED"
    CONCURRENT_BOOKING_CONFLICT = "CONCURRENT_BOOKING_CONFLICT"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    NO_SCHEDULED_SESSIONS = "NO_SCHEDULED_SESSIONS"
    SUBSCRIPTION_MISMATCH = "SUBSCRIPTION_MISMATCH"


class SlotRejectionReason(str, Enum):
    """Why a single candidate interval is not bookable."""

    IN_PAST = "in_past"
    OUTSIDE_AVAILABILITY = "outside_availability"
    OVERLAPS_BOOKING = "overlaps_booking"
    BLOCKED = "blocked"
