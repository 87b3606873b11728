"""
Tests for the minimum-notice rule.
"""

import pytest

from tutorbook.core.constants import MS_PER_HOUR, MS_PER_MINUTE
from tutorbook.models.session import SessionStatus
from tutorbook.schemas.session import SessionData
from tutorbook.services.modification_policy import (
    can_modify,
    check_series_modifiable,
    hours_until,
)

NOW = 1_900_000_000_000


def _session(session_id, hours_ahead, status=SessionStatus.SCHEDULED):
    return SessionData(
        id=session_id,
        subscription_id="sub",
        tutor_id="tutor",
        parent_id="parent",
        student_name="Sam",
        scheduled_at=NOW + int(hours_ahead * MS_PER_HOUR),
        duration=60,
        status=status,
    )


@pytest.mark.parametrize(
    "hours_ahead,expected",
    [(10, False), (11.99, False), (12, True), (13, True), (-1, False)],
)
def test_can_modify_at_default_notice(hours_ahead, expected):
    assert can_modify(NOW + int(hours_ahead * MS_PER_HOUR), NOW) is expected


def test_exact_boundary_minus_one_minute_is_blocked():
    assert not can_modify(NOW + 12 * MS_PER_HOUR - MS_PER_MINUTE, NOW)


def test_custom_notice_window():
    assert can_modify(NOW + 3 * MS_PER_HOUR, NOW, min_notice_hours=2)
    assert not can_modify(NOW + 3 * MS_PER_HOUR, NOW, min_notice_hours=24)
    assert can_modify(NOW + 1, NOW, min_notice_hours=0)


def test_hours_until():
    assert hours_until(NOW + 90 * MS_PER_MINUTE, NOW) == 1.5


class TestSeries:
    def test_one_session_inside_notice_blocks_the_series(self):
        sessions = [_session("soon", 5), _session("later", 200), _session("latest", 400)]
        result = check_series_modifiable(sessions, NOW)
        assert not result.allowed
        assert result.blocking_session_ids == ("soon",)

    def test_closed_sessions_are_ignored(self):
        sessions = [
            _session("done", -48, status=SessionStatus.COMPLETED),
            _session("missed", -24, status=SessionStatus.NO_SHOW),
            _session("next", 48),
        ]
        assert check_series_modifiable(sessions, NOW).allowed

    def test_payload_shape(self):
        result = check_series_modifiable([_session("soon", 1)], NOW)
        assert result.to_payload() == {"allowed": False, "blocking_session_ids": ["soon"]}
