"""
Tests for the pure overlap checks.
"""

from tutorbook.models.session import SessionStatus
from tutorbook.schemas.session import SessionData
from tutorbook.services.conflict_detector import (
    Interval,
    find_conflicts,
    occupied_intervals,
    overlaps,
)

from tests.helpers.scheduling import MONDAY, at


def _session(session_id: str, start: int, duration: int = 60, status=SessionStatus.SCHEDULED):
    return SessionData(
        id=session_id,
        tutor_id="tutor",
        parent_id="parent",
        student_name="Sam",
        scheduled_at=start,
        duration=duration,
        status=status,
    )


class TestOverlaps:
    def test_back_to_back_is_not_a_conflict(self):
        booked = [Interval(at(MONDAY, 9), at(MONDAY, 10))]
        assert not overlaps(Interval(at(MONDAY, 10), at(MONDAY, 11)), booked)
        assert not overlaps(Interval(at(MONDAY, 8), at(MONDAY, 9)), booked)

    def test_partial_and_containing_overlaps(self):
        booked = [Interval(at(MONDAY, 9), at(MONDAY, 10))]
        assert overlaps(Interval(at(MONDAY, 9, 30), at(MONDAY, 10, 30)), booked)
        assert overlaps(Interval(at(MONDAY, 8), at(MONDAY, 11)), booked)
        assert overlaps(Interval(at(MONDAY, 9, 15), at(MONDAY, 9, 45)), booked)

    def test_result_does_not_depend_on_order(self):
        candidate = Interval(at(MONDAY, 12), at(MONDAY, 13))
        booked = [
            Interval(at(MONDAY, 8), at(MONDAY, 9)),
            Interval(at(MONDAY, 12, 30), at(MONDAY, 13, 30)),
            Interval(at(MONDAY, 15), at(MONDAY, 16)),
        ]
        assert overlaps(candidate, booked) is overlaps(candidate, list(reversed(booked)))

    def test_empty_booked_set(self):
        assert not overlaps(Interval(at(MONDAY, 9), at(MONDAY, 10)), [])


class TestFindConflicts:
    def test_cancelled_sessions_never_conflict(self):
        sessions = [_session("a", at(MONDAY, 9), status=SessionStatus.CANCELLED)]
        assert find_conflicts(Interval.from_duration(at(MONDAY, 9), 60), sessions) == []

    def test_completed_and_no_show_still_occupy_time(self):
        sessions = [
            _session("done", at(MONDAY, 9), status=SessionStatus.COMPLETED),
            _session("missed", at(MONDAY, 10), status=SessionStatus.NO_SHOW),
        ]
        conflicts = find_conflicts(Interval(at(MONDAY, 9, 30), at(MONDAY, 10, 30)), sessions)
        assert [s.id for s in conflicts] == ["done", "missed"]

    def test_excluded_ids_are_ignored(self):
        sessions = [_session("moving", at(MONDAY, 9)), _session("other", at(MONDAY, 11))]
        candidate = Interval.from_duration(at(MONDAY, 9, 30), 60)
        assert find_conflicts(candidate, sessions, exclude_session_ids={"moving"}) == []

    def test_conflicts_sorted_by_start(self):
        sessions = [_session("late", at(MONDAY, 11)), _session("early", at(MONDAY, 9))]
        candidate = Interval(at(MONDAY, 8), at(MONDAY, 12))
        assert [s.id for s in find_conflicts(candidate, sessions)] == ["early", "late"]

    def test_occupied_intervals_skip_cancelled_and_excluded(self):
        sessions = [
            _session("a", at(MONDAY, 9)),
            _session("b", at(MONDAY, 10), status=SessionStatus.CANCELLED),
            _session("c", at(MONDAY, 11), duration=30),
        ]
        assert occupied_intervals(sessions, exclude_session_ids=("a",)) == [
            Interval(at(MONDAY, 11), at(MONDAY, 11, 30))
        ]
