# backend/tutorbook/services/series_rescheduler.py
"""
Series Rescheduler for the tutor booking engine

Moves every scheduled session of a subscription onto a new recurrence:
session ``k`` (zero-based, in current start order) lands on
``new_anchor_date + k * step_days`` at its original time of day and keeps its
duration. Each regenerated occurrence must fit an active window, stay clear
of time blocks, avoid the tutor's other live sessions and start in the
future. A single failing occurrence rejects the whole move; nothing is
returned for a partial write.

``validate_new_series`` applies the same per-occurrence rules to a list of
explicit starts when a series is booked in one request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import pytz

from ..core.constants import BIWEEKLY_STEP_DAYS, WEEKLY_STEP_DAYS
from ..core.enums import RecurrenceFrequency, SlotRejectionReason
from ..core.timezone_utils import get_canonical_timezone, local_time_of, local_to_epoch_ms
from ..models.session import SessionStatus
from ..schemas.availability import AvailabilityWindowData, TimeBlockData
from ..schemas.session import SessionData
from .conflict_detector import Interval
from .slot_resolver import SlotCheck, is_slot_bookable

STEP_DAYS = {
    RecurrenceFrequency.WEEKLY: WEEKLY_STEP_DAYS,
    RecurrenceFrequency.BIWEEKLY: BIWEEKLY_STEP_DAYS,
}


@dataclass(frozen=True)
class ScheduleChange:
    session_id: str
    new_scheduled_at: int

    def as_pair(self) -> Tuple[str, int]:
        return self.session_id, self.new_scheduled_at


@dataclass(frozen=True)
class OccurrenceFailure:
    """First occurrence of a series that cannot be placed."""

    index: int
    proposed_start: int
    check: SlotCheck
    session_id: Optional[str] = None

    @property
    def reason(self) -> SlotRejectionReason:
        return self.check.rejection

    @property
    def conflicting_session_ids(self) -> Tuple[str, ...]:
        return self.check.conflicting_session_ids

    def to_payload(self) -> dict[str, object]:
        return {
            "occurrence_index": self.index,
            "session_id": self.session_id,
            "proposed_start": self.proposed_start,
            **self.check.to_payload(),
        }


@dataclass(frozen=True)
class SeriesRescheduleResult:
    subscription_id: str
    changes: Tuple[ScheduleChange, ...] = field(default_factory=tuple)
    failure: Optional[OccurrenceFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def pairs(self) -> List[Tuple[str, int]]:
        return [change.as_pair() for change in self.changes]


def step_days_for(frequency: RecurrenceFrequency) -> int:
    return STEP_DAYS[RecurrenceFrequency(frequency)]


def reschedule_series(
    subscription_id: str,
    current_sessions: Sequence[SessionData],
    new_anchor_date: date,
    frequency: RecurrenceFrequency,
    windows: Iterable[AvailabilityWindowData],
    other_booked: Iterable[SessionData],
    now: int,
    tz: Optional[pytz.BaseTzInfo] = None,
    blocks: Iterable[TimeBlockData] = (),
) -> SeriesRescheduleResult:
    """
    Regenerate the schedule of a series and validate every occurrence.

    Args:
        subscription_id: Subscription whose series is moved
        current_sessions: The series' sessions; only scheduled ones move
        new_anchor_date: Calendar date (canonical zone) of the first occurrence
        frequency: Weekly (7 days) or biweekly (14 days) spacing
        windows: Tutor's availability windows
        other_booked: Tutor's sessions in the affected range; the moving
            sessions themselves may be included and are ignored
        now: Current instant, epoch ms
        tz: Zone for calendar math (canonical zone by default)
        blocks: Tutor's time blocks in the affected range

    Returns:
        SeriesRescheduleResult with every change, or the first failing
        occurrence and no changes.
    """
    zone = tz or get_canonical_timezone()
    step = step_days_for(frequency)

    moving = sorted(
        (s for s in current_sessions if s.status is SessionStatus.SCHEDULED),
        key=lambda s: (s.scheduled_at, s.id),
    )
    for session in moving:
        if session.subscription_id != subscription_id:
            raise ValueError(
                f"Session {session.id} does not belong to subscription {subscription_id}"
            )

    moving_ids = frozenset(s.id for s in moving)
    booked = list(other_booked)
    windows = list(windows)
    blocks = list(blocks)

    changes: List[ScheduleChange] = []
    for index, session in enumerate(moving):
        new_date = new_anchor_date + timedelta(days=index * step)
        new_start = local_to_epoch_ms(new_date, local_time_of(session.scheduled_at, zone), zone)

        check = is_slot_bookable(
            session.tutor_id,
            new_start,
            session.duration,
            windows,
            booked,
            now,
            exclude_session_ids=moving_ids,
            tz=zone,
            blocks=blocks,
        )
        if not check.bookable:
            return SeriesRescheduleResult(
                subscription_id=subscription_id,
                failure=OccurrenceFailure(
                    index=index, proposed_start=new_start, check=check, session_id=session.id
                ),
            )
        changes.append(ScheduleChange(session.id, new_start))

    return SeriesRescheduleResult(subscription_id=subscription_id, changes=tuple(changes))


def validate_new_series(
    tutor_id: str,
    starts: Sequence[int],
    duration: int,
    windows: Iterable[AvailabilityWindowData],
    booked: Iterable[SessionData],
    now: int,
    tz: Optional[pytz.BaseTzInfo] = None,
    blocks: Iterable[TimeBlockData] = (),
) -> Optional[OccurrenceFailure]:
    """
    Check every start of a series about to be booked.

    Occurrences are validated in the order given. Besides the single-slot
    rules, an occurrence may not overlap an earlier occurrence of the same
    request.

    Returns:
        The first failing occurrence, or None when all of them are bookable.
    """
    windows = list(windows)
    booked = list(booked)
    blocks = list(blocks)

    accepted: List[Interval] = []
    for index, start in enumerate(starts):
        check = is_slot_bookable(
            tutor_id, start, duration, windows, booked, now, tz=tz, blocks=blocks
        )
        if check.bookable and any(
            Interval.from_duration(start, duration).overlaps(earlier) for earlier in accepted
        ):
            check = SlotCheck(False, SlotRejectionReason.OVERLAPS_BOOKING)
        if not check.bookable:
            return OccurrenceFailure(index=index, proposed_start=start, check=check)
        accepted.append(Interval.from_duration(start, duration))
    return None
