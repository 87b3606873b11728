# backend/tutorbook/services/slot_resolver.py
"""
Slot Resolver for the tutor booking engine

Expands a tutor's recurring weekly windows over a horizon into discrete
bookable start instants, dropping candidates that are in the past, that
fall in a blocked interval or that overlap a live booking. The same predicates back ``is_slot_bookable``, which
booking and single-session reschedule use to validate one requested
interval.
"""

from collections import defaultdict
from datetime import date
import logging
from typing import Callable, Collection, Dict, Iterable, List, NamedTuple, Optional, Tuple

import pytz
from sqlalchemy.orm import Session

from ..core.constants import MS_PER_DAY, MS_PER_MINUTE
from ..core.enums import SlotRejectionReason
from ..core.timezone_utils import (
    day_of_week,
    get_canonical_timezone,
    iter_dates,
    local_date_of,
    local_to_epoch_ms,
    now_ms,
    parse_time_of_day,
)
from ..repositories.factory import RepositoryFactory
from ..repositories.interfaces import AvailabilityWindowStore, BookedSessionStore, TimeBlockStore
from ..schemas.availability import (
    AvailabilityWindowData,
    SlotPreviewResponse,
    SlotResponse,
    TimeBlockData,
)
from ..schemas.session import SessionData
from .base import BaseService
from .conflict_detector import Interval, find_conflicts, occupied_intervals, overlaps
from .policy import BookingPolicy

logger = logging.getLogger(__name__)


class SlotCheck(NamedTuple):
    """Outcome of validating one candidate interval."""

    bookable: bool
    reason: Optional[SlotRejectionReason] = None
    conflicting_session_ids: Tuple[str, ...] = ()
    blocking_ids: Tuple[str, ...] = ()

    @property
    def rejection(self) -> SlotRejectionReason:
        if self.reason is None:
            raise ValueError("A bookable slot has no rejection reason")
        return self.reason

    def to_payload(self) -> Dict[str, object]:
        return {
            "reason": self.rejection.value,
            "conflicting_session_ids": list(self.conflicting_session_ids),
            "time_block_ids": list(self.blocking_ids),
        }


def window_interval(
    window: AvailabilityWindowData, on_date: date, tz: Optional[pytz.BaseTzInfo] = None
) -> Interval:
    """Absolute instants of ``window`` on a given calendar date."""
    zone = tz or get_canonical_timezone()
    return Interval(
        local_to_epoch_ms(on_date, parse_time_of_day(window.start_time), zone),
        local_to_epoch_ms(on_date, parse_time_of_day(window.end_time), zone),
    )


def _active_windows_by_day(
    tutor_id: str, windows: Iterable[AvailabilityWindowData]
) -> Dict[int, List[AvailabilityWindowData]]:
    by_day: Dict[int, List[AvailabilityWindowData]] = defaultdict(list)
    for window in windows:
        if window.is_active and window.tutor_id == tutor_id:
            by_day[window.day_of_week].append(window)
    return by_day


def resolve_slots(
    tutor_id: str,
    windows: Iterable[AvailabilityWindowData],
    booked: Iterable[SessionData],
    horizon_start: int,
    horizon_end: int,
    slot_duration: int,
    step_minutes: int = 30,
    now: Optional[int] = None,
    exclude_session_id: Optional[str] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
    blocks: Iterable[TimeBlockData] = (),
) -> List[int]:
    """
    Resolve bookable slot starts for a tutor.

    For every active window and every calendar date in the horizon whose
    weekday matches, a cursor walks from the window start in ``step_minutes``
    increments while ``[cursor, cursor + slot_duration)`` still fits inside
    the window. A candidate is kept when it starts after ``now``, starts
    inside ``[horizon_start, horizon_end]`` and overlaps neither a time block
    nor a live booking (``exclude_session_id`` is ignored, so a session being
    moved does not block its own neighbourhood).

    Args:
        tutor_id: Tutor whose windows are expanded
        windows: Recurring windows; inactive ones and other tutors' are skipped
        booked: Sessions on the tutor's calendar
        horizon_start: Earliest slot start, epoch ms
        horizon_end: Latest slot start, epoch ms
        slot_duration: Slot length in minutes
        step_minutes: Distance between candidate starts
        now: Current instant, epoch ms
        exclude_session_id: Session ignored for overlap checks
        tz: Zone for calendar math (canonical zone by default)
        blocks: Tutor's time blocks; other tutors' are skipped

    Returns:
        Sorted, de-duplicated slot starts in epoch ms. Empty means no
        availability and is not an error.
    """
    if slot_duration <= 0:
        raise ValueError("slot_duration must be positive")
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")
    if horizon_end < horizon_start:
        return []

    zone = tz or get_canonical_timezone()
    current = now_ms() if now is None else now
    duration_ms = slot_duration * MS_PER_MINUTE
    step_ms = step_minutes * MS_PER_MINUTE

    windows_by_day = _active_windows_by_day(tutor_id, windows)
    if not windows_by_day:
        return []

    excluded = (exclude_session_id,) if exclude_session_id else ()
    taken = occupied_intervals(
        (s for s in booked if s.tutor_id == tutor_id), exclude_session_ids=excluded
    )
    taken.extend(block.interval for block in blocks if block.tutor_id == tutor_id)

    starts = set()
    for on_date in iter_dates(local_date_of(horizon_start, zone), local_date_of(horizon_end, zone)):
        for window in windows_by_day.get(day_of_week(on_date), ()):
            span = window_interval(window, on_date, zone)
            cursor = span.start
            while cursor + duration_ms <= span.end:
                if horizon_start <= cursor <= horizon_end and cursor > current:
                    candidate = Interval(cursor, cursor + duration_ms)
                    if not overlaps(candidate, taken):
                        starts.add(cursor)
                cursor += step_ms

    return sorted(starts)


def fits_availability(
    candidate: Interval,
    windows: Iterable[AvailabilityWindowData],
    tutor_id: str,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> bool:
    """True when ``candidate`` lies entirely inside one active window."""
    zone = tz or get_canonical_timezone()
    on_date = local_date_of(candidate.start, zone)
    for window in _active_windows_by_day(tutor_id, windows).get(day_of_week(on_date), ()):
        if window_interval(window, on_date, zone).contains(candidate):
            return True
    return False


def is_slot_bookable(
    tutor_id: str,
    candidate_start: int,
    duration: int,
    windows: Iterable[AvailabilityWindowData],
    booked: Iterable[SessionData],
    now: int,
    exclude_session_ids: Optional[Collection[str]] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
    blocks: Iterable[TimeBlockData] = (),
) -> SlotCheck:
    """
    Validate a single requested interval with the resolver's predicates.

    Checks run cheapest first: in the future, inside an active window,
    outside every time block, free of live bookings.
    """
    if candidate_start <= now:
        return SlotCheck(False, SlotRejectionReason.IN_PAST)

    candidate = Interval.from_duration(candidate_start, duration)
    if not fits_availability(candidate, windows, tutor_id, tz):
        return SlotCheck(False, SlotRejectionReason.OUTSIDE_AVAILABILITY)

    blocking = tuple(
        block.id
        for block in blocks
        if block.tutor_id == tutor_id and candidate.overlaps(block.interval)
    )
    if blocking:
        return SlotCheck(False, SlotRejectionReason.BLOCKED, blocking_ids=blocking)

    conflicts = find_conflicts(
        candidate,
        (s for s in booked if s.tutor_id == tutor_id),
        exclude_session_ids=exclude_session_ids,
    )
    if conflicts:
        return SlotCheck(
            False,
            SlotRejectionReason.OVERLAPS_BOOKING,
            tuple(conflict.id for conflict in conflicts),
        )
    return SlotCheck(True)


class SlotResolverService(BaseService):
    """
    Reads windows, time blocks and booked sessions from the stores and
    resolves slots.

    Used for the availability preview; booking and reschedule validation go
    through the orchestrator, which calls the same pure functions.
    """

    def __init__(
        self,
        db: Session,
        window_repository: Optional[AvailabilityWindowStore] = None,
        session_repository: Optional[BookedSessionStore] = None,
        policy: Optional[BookingPolicy] = None,
        clock: Callable[[], int] = now_ms,
        block_store: Optional[TimeBlockStore] = None,
    ):
        super().__init__(db)
        self.window_repository = (
            window_repository or RepositoryFactory.create_availability_window_repository(db)
        )
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.block_store = block_store or RepositoryFactory.create_time_block_repository(db)
        self.policy = policy or BookingPolicy.from_settings()
        self.clock = clock

    @BaseService.measure_operation("preview_slots")
    def preview_slots(
        self,
        tutor_id: str,
        slot_duration: int,
        horizon_days: Optional[int] = None,
        exclude_session_id: Optional[str] = None,
    ) -> SlotPreviewResponse:
        """
        Bookable slots for a tutor from now until ``horizon_days`` ahead.

        Args:
            tutor_id: Tutor to preview
            slot_duration: Desired session length in minutes
            horizon_days: Days ahead to search (policy default when omitted)
            exclude_session_id: Session being rescheduled, ignored for overlaps

        Returns:
            SlotPreviewResponse with slots ordered by start
        """
        now = self.clock()
        days = horizon_days or self.policy.availability_horizon_days
        horizon_end = now + days * MS_PER_DAY

        windows = self.window_repository.get_availability_windows(tutor_id)
        range_end = horizon_end + slot_duration * MS_PER_MINUTE
        booked = self.session_repository.get_booked_sessions(tutor_id, now, range_end)
        blocks = self.block_store.get_time_blocks(tutor_id, now, range_end)
        starts = resolve_slots(
            tutor_id,
            windows,
            booked,
            horizon_start=now,
            horizon_end=horizon_end,
            slot_duration=slot_duration,
            step_minutes=self.policy.slot_step_minutes,
            now=now,
            exclude_session_id=exclude_session_id,
            blocks=blocks,
        )

        self.logger.debug(
            "Resolved %d slots for tutor %s over %d days", len(starts), tutor_id, days
        )
        duration_ms = slot_duration * MS_PER_MINUTE
        return SlotPreviewResponse(
            tutor_id=tutor_id,
            horizon_start=now,
            horizon_end=horizon_end,
            slot_duration=slot_duration,
            step_minutes=self.policy.slot_step_minutes,
            slots=[SlotResponse(start=start, end=start + duration_ms) for start in starts],
        )
