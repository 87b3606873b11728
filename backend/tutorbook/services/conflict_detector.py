# backend/tutorbook/services/conflict_detector.py
"""
Conflict Detector for the tutor booking engine

Pure overlap checks between a candidate interval and booked intervals.
Intervals are half-open ``[start, end)`` in epoch milliseconds, so a
session ending exactly when the next one starts is not a conflict.

Every caller (booking, single reschedule, series reschedule, slot
preview) goes through these functions.
"""

from typing import TYPE_CHECKING, Collection, Iterable, List, NamedTuple, Optional

from ..core.constants import MS_PER_MINUTE

if TYPE_CHECKING:
    from ..schemas.session import SessionData


class Interval(NamedTuple):
    """Half-open time interval in epoch milliseconds."""

    start: int
    end: int

    @classmethod
    def from_duration(cls, start: int, duration_minutes: int) -> "Interval":
        return cls(start, start + duration_minutes * MS_PER_MINUTE)

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(candidate: Interval, booked_intervals: Iterable[Interval]) -> bool:
    """
    Return True if ``candidate`` overlaps any of ``booked_intervals``.

    ``[a0, a1)`` and ``[b0, b1)`` overlap iff ``a0 < b1 and b0 < a1``.
    The result does not depend on the order of ``booked_intervals``.
    """
    return any(candidate.overlaps(booked) for booked in booked_intervals)


def occupied_intervals(
    sessions: Iterable["SessionData"],
    exclude_session_ids: Optional[Collection[str]] = None,
) -> List[Interval]:
    """Intervals of sessions that occupy time, minus the excluded ids."""
    excluded = exclude_session_ids or ()
    return [
        session.interval
        for session in sessions
        if session.occupies_time and session.id not in excluded
    ]


def find_conflicts(
    candidate: Interval,
    sessions: Iterable["SessionData"],
    exclude_session_ids: Optional[Collection[str]] = None,
) -> List["SessionData"]:
    """
    Return the sessions whose occupied interval overlaps ``candidate``.

    Cancelled sessions never conflict.

    Args:
        candidate: Interval being validated
        sessions: Sessions already on the tutor's calendar
        exclude_session_ids: Sessions to ignore (e.g. the one being moved)

    Returns:
        Conflicting sessions, ordered by start time
    """
    excluded = exclude_session_ids or ()
    conflicts = [
        session
        for session in sessions
        if session.occupies_time
        and session.id not in excluded
        and candidate.overlaps(session.interval)
    ]
    return sorted(conflicts, key=lambda s: (s.scheduled_at, s.id))
