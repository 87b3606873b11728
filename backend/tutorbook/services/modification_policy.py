# backend/tutorbook/services/modification_policy.py
"""Minimum-notice rule for cancelling or rescheduling sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Tuple

from ..core.constants import DEFAULT_MIN_NOTICE_HOURS, MS_PER_HOUR
from ..models.session import SessionStatus
from ..schemas.session import SessionData


def can_modify(scheduled_at: int, now: int, min_notice_hours: int = DEFAULT_MIN_NOTICE_HOURS) -> bool:
    """Allowed iff the session starts at least ``min_notice_hours`` after ``now``."""
    return (scheduled_at - now) >= min_notice_hours * MS_PER_HOUR


def hours_until(scheduled_at: int, now: int) -> float:
    return (scheduled_at - now) / MS_PER_HOUR


@dataclass(frozen=True)
class SeriesModificationCheck:
    allowed: bool
    blocking_session_ids: Tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, object]:
        return {"allowed": self.allowed, "blocking_session_ids": list(self.blocking_session_ids)}


def check_series_modifiable(
    sessions: Iterable[SessionData],
    now: int,
    min_notice_hours: int = DEFAULT_MIN_NOTICE_HOURS,
) -> SeriesModificationCheck:
    """
    Evaluate the notice rule against every scheduled session of a series.

    One session inside the notice window blocks the whole series.
    Sessions that are not scheduled are ignored.
    """
    blocking = tuple(
        session.id
        for session in sessions
        if session.status is SessionStatus.SCHEDULED
        and not can_modify(session.scheduled_at, now, min_notice_hours)
    )
    return SeriesModificationCheck(allowed=not blocking, blocking_session_ids=blocking)
