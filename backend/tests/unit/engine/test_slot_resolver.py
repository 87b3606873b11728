"""
Tests for slot resolution and single-slot validation.
"""

from datetime import timedelta

import pytest
import pytz

from tutorbook.core.enums import SlotRejectionReason
from tutorbook.models.session import SessionStatus
from tutorbook.schemas.availability import AvailabilityWindowData, TimeBlockData
from tutorbook.schemas.session import SessionData
from tutorbook.services.conflict_detector import Interval, overlaps
from tutorbook.services.slot_resolver import (
    fits_availability,
    is_slot_bookable,
    resolve_slots,
    window_interval,
)

from tests.helpers.scheduling import MONDAY, MONDAY_DOW, SUNDAY, TUESDAY, at

TUTOR = "tutor-1"


def _window(day=MONDAY_DOW, start="09:00", end="11:00", active=True, tutor=TUTOR):
    return AvailabilityWindowData(
        tutor_id=tutor, day_of_week=day, start_time=start, end_time=end, is_active=active
    )


def _booked(session_id, start, duration=60, status=SessionStatus.SCHEDULED):
    return SessionData(
        id=session_id,
        tutor_id=TUTOR,
        parent_id="parent",
        student_name="Sam",
        scheduled_at=start,
        duration=duration,
        status=status,
    )


def _block(block_id, start, end, tutor=TUTOR):
    return TimeBlockData(id=block_id, tutor_id=tutor, starts_at=start, ends_at=end)


def _resolve_monday(windows, booked=(), now=None, **kwargs):
    return resolve_slots(
        TUTOR,
        windows,
        booked,
        horizon_start=at(MONDAY, 0),
        horizon_end=at(MONDAY, 23, 59),
        slot_duration=kwargs.pop("slot_duration", 60),
        step_minutes=kwargs.pop("step_minutes", 30),
        now=at(SUNDAY, 0) if now is None else now,
        **kwargs,
    )


class TestResolveSlots:
    def test_monday_window_yields_three_hour_slots(self):
        slots = _resolve_monday([_window()])
        assert slots == [at(MONDAY, 9), at(MONDAY, 9, 30), at(MONDAY, 10)]

    def test_booking_inside_window_removes_every_overlapping_start(self):
        booked = [_booked("s1", at(MONDAY, 9, 30))]
        assert _resolve_monday([_window()], booked) == []

    def test_booking_at_window_start_leaves_back_to_back_slot(self):
        booked = [_booked("s1", at(MONDAY, 9))]
        assert _resolve_monday([_window()], booked) == [at(MONDAY, 10)]

    def test_cancelled_booking_does_not_block(self):
        booked = [_booked("s1", at(MONDAY, 9, 30), status=SessionStatus.CANCELLED)]
        assert _resolve_monday([_window()], booked) == [
            at(MONDAY, 9),
            at(MONDAY, 9, 30),
            at(MONDAY, 10),
        ]

    def test_excluded_session_does_not_block_its_own_neighbourhood(self):
        booked = [_booked("moving", at(MONDAY, 9, 30))]
        slots = _resolve_monday([_window()], booked, exclude_session_id="moving")
        assert slots == [at(MONDAY, 9), at(MONDAY, 9, 30), at(MONDAY, 10)]

    def test_inactive_and_foreign_windows_are_ignored(self):
        windows = [_window(active=False), _window(tutor="someone-else")]
        assert _resolve_monday(windows) == []

    def test_overlapping_windows_do_not_duplicate_slots(self):
        windows = [_window(), _window(start="09:30", end="11:00")]
        assert _resolve_monday(windows) == [at(MONDAY, 9), at(MONDAY, 9, 30), at(MONDAY, 10)]

    def test_slots_at_or_before_now_are_dropped(self):
        slots = _resolve_monday([_window()], now=at(MONDAY, 9, 30))
        assert slots == [at(MONDAY, 10)]

    def test_horizon_bounds_the_slot_start(self):
        slots = resolve_slots(
            TUTOR,
            [_window()],
            [],
            horizon_start=at(MONDAY, 9, 15),
            horizon_end=at(MONDAY, 9, 45),
            slot_duration=60,
            step_minutes=30,
            now=at(SUNDAY, 0),
        )
        assert slots == [at(MONDAY, 9, 30)]

    def test_recurs_every_week_in_horizon(self):
        slots = resolve_slots(
            TUTOR,
            [_window(start="09:00", end="10:00")],
            [],
            horizon_start=at(SUNDAY, 0),
            horizon_end=at(SUNDAY + timedelta(days=14), 0),
            slot_duration=60,
            now=at(SUNDAY, 0),
        )
        assert slots == [at(MONDAY, 9), at(MONDAY + timedelta(days=7), 9)]

    def test_time_block_removes_overlapping_starts(self):
        blocks = [_block("b1", at(MONDAY, 10), at(MONDAY, 10, 30))]
        assert _resolve_monday([_window()], blocks=blocks) == [at(MONDAY, 9)]

    def test_foreign_time_block_is_ignored(self):
        blocks = [_block("b1", at(MONDAY, 9), at(MONDAY, 11), tutor="someone-else")]
        assert len(_resolve_monday([_window()], blocks=blocks)) == 3

    def test_window_shorter_than_slot_yields_nothing(self):
        assert _resolve_monday([_window(start="09:00", end="09:45")]) == []

    def test_empty_horizon(self):
        slots = resolve_slots(
            TUTOR, [_window()], [], at(TUESDAY, 0), at(MONDAY, 0), 60, now=at(SUNDAY, 0)
        )
        assert slots == []

    @pytest.mark.parametrize("duration,step", [(0, 30), (60, 0)])
    def test_non_positive_duration_or_step_raises(self, duration, step):
        with pytest.raises(ValueError):
            _resolve_monday([_window()], slot_duration=duration, step_minutes=step)

    def test_every_slot_lies_in_a_window_and_avoids_live_bookings(self):
        windows = [_window(), _window(start="13:00", end="17:30")]
        booked = [_booked("a", at(MONDAY, 14)), _booked("b", at(MONDAY, 15, 30), duration=45)]
        slots = _resolve_monday(windows, booked, slot_duration=45, step_minutes=15)

        booked_intervals = [s.interval for s in booked]
        for start in slots:
            candidate = Interval.from_duration(start, 45)
            assert fits_availability(candidate, windows, TUTOR)
            assert not overlaps(candidate, booked_intervals)
        assert slots == sorted(set(slots))

    def test_canonical_zone_changes_absolute_instants(self):
        zone = pytz.timezone("America/New_York")
        slots = resolve_slots(
            TUTOR,
            [_window(start="09:00", end="10:00")],
            [],
            horizon_start=at(MONDAY, 0),
            horizon_end=at(TUESDAY, 0),
            slot_duration=60,
            now=at(SUNDAY, 0),
            tz=zone,
        )
        # 09:00 EST is 14:00 UTC in January.
        assert slots == [at(MONDAY, 14)]


class TestIsSlotBookable:
    def test_bookable(self):
        check = is_slot_bookable(TUTOR, at(MONDAY, 9), 60, [_window()], [], now=at(SUNDAY, 0))
        assert check.bookable
        assert check.reason is None

    def test_in_past(self):
        check = is_slot_bookable(TUTOR, at(MONDAY, 9), 60, [_window()], [], now=at(MONDAY, 9))
        assert check.reason is SlotRejectionReason.IN_PAST

    def test_spilling_past_window_end(self):
        check = is_slot_bookable(
            TUTOR, at(MONDAY, 10, 30), 60, [_window()], [], now=at(SUNDAY, 0)
        )
        assert check.reason is SlotRejectionReason.OUTSIDE_AVAILABILITY

    def test_off_grid_start_inside_window_is_accepted(self):
        check = is_slot_bookable(
            TUTOR, at(MONDAY, 9, 10), 60, [_window()], [], now=at(SUNDAY, 0)
        )
        assert check.bookable

    def test_overlap_reports_conflicting_ids(self):
        check = is_slot_bookable(
            TUTOR,
            at(MONDAY, 9),
            60,
            [_window()],
            [_booked("s1", at(MONDAY, 9, 30))],
            now=at(SUNDAY, 0),
        )
        assert check.reason is SlotRejectionReason.OVERLAPS_BOOKING
        assert check.conflicting_session_ids == ("s1",)

    def test_window_interval_uses_the_date(self):
        assert window_interval(_window(), MONDAY) == Interval(at(MONDAY, 9), at(MONDAY, 11))

    def test_block_is_checked_before_bookings(self):
        check = is_slot_bookable(
            TUTOR,
            at(MONDAY, 9),
            60,
            [_window()],
            [_booked("s1", at(MONDAY, 9))],
            now=at(SUNDAY, 0),
            blocks=[_block("b1", at(MONDAY, 9, 45), at(MONDAY, 11))],
        )
        assert check.reason is SlotRejectionReason.BLOCKED
        assert check.blocking_ids == ("b1",)
        assert check.to_payload() == {
            "reason": "blocked",
            "conflicting_session_ids": [],
            "time_block_ids": ["b1"],
        }

    def test_block_ending_at_start_does_not_block(self):
        check = is_slot_bookable(
            TUTOR,
            at(MONDAY, 9),
            60,
            [_window()],
            [],
            now=at(SUNDAY, 0),
            blocks=[_block("b1", at(MONDAY, 8), at(MONDAY, 9))],
        )
        assert check.bookable

    def test_bookable_check_has_no_rejection(self):
        check = is_slot_bookable(TUTOR, at(MONDAY, 9), 60, [_window()], [], now=at(SUNDAY, 0))
        with pytest.raises(ValueError):
            check.rejection
