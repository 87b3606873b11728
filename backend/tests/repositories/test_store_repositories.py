"""
Tests for the availability window, time block and trial usage repositories.
"""

import pytest

from tutorbook.core.exceptions import TrialLimitReachedException
from tutorbook.repositories.availability_window_repository import AvailabilityWindowRepository
from tutorbook.repositories.factory import RepositoryFactory
from tutorbook.repositories.time_block_repository import TimeBlockRepository
from tutorbook.repositories.trial_usage_repository import TrialUsageRepository

from tests.helpers.scheduling import MONDAY, at, new_id


def test_windows_are_returned_as_snapshots_in_weekday_order(db, add_window, tutor_id):
    add_window(tutor_id, 3, "13:00", "15:00")
    add_window(tutor_id, 1, "09:00", "11:00", is_active=False)
    add_window(new_id(), 1, "09:00", "11:00")

    windows = AvailabilityWindowRepository(db).get_availability_windows(tutor_id)

    assert [(w.day_of_week, w.start_time, w.is_active) for w in windows] == [
        (1, "09:00", False),
        (3, "13:00", True),
    ]


def test_trial_usage_defaults_to_zero(db):
    assert TrialUsageRepository(db).get_trial_usage(new_id()) == 0


def test_increment_is_idempotent_per_session(db, parent_id):
    repo = TrialUsageRepository(db)

    assert repo.increment_trial_usage(parent_id, "session-1") is True
    db.commit()
    assert repo.increment_trial_usage(parent_id, "session-1") is False
    assert repo.increment_trial_usage(parent_id, "session-2") is True
    db.commit()

    assert repo.get_trial_usage(parent_id) == 2


def test_factory_builds_every_repository(db):
    assert RepositoryFactory.create_availability_window_repository(db).db is db
    assert RepositoryFactory.create_session_repository(db).db is db
    assert RepositoryFactory.create_subscription_repository(db).db is db
    assert RepositoryFactory.create_time_block_repository(db).db is db
    assert RepositoryFactory.create_trial_usage_repository(db).db is db


def test_increment_refuses_once_cap_is_reached(db, parent_id):
    repo = TrialUsageRepository(db)
    assert repo.increment_trial_usage(parent_id, "session-1", trial_cap=2) is True
    assert repo.increment_trial_usage(parent_id, "session-2", trial_cap=2) is True
    db.commit()

    with pytest.raises(TrialLimitReachedException) as exc_info:
        repo.increment_trial_usage(parent_id, "session-3", trial_cap=2)
    db.rollback()

    assert exc_info.value.code == "TRIAL_LIMIT_REACHED"
    assert repo.get_trial_usage(parent_id) == 2


def test_time_blocks_intersecting_range_are_returned_in_order(db, add_block, tutor_id):
    add_block(tutor_id, at(MONDAY, 14), at(MONDAY, 15), reason="dentist")
    add_block(tutor_id, at(MONDAY, 9), at(MONDAY, 10))
    add_block(tutor_id, at(MONDAY, 18), at(MONDAY, 19))
    add_block(new_id(), at(MONDAY, 9), at(MONDAY, 12))

    blocks = TimeBlockRepository(db).get_time_blocks(tutor_id, at(MONDAY, 10), at(MONDAY, 18))

    # [9, 10) and [18, 19) only touch the range
    assert [(b.starts_at, b.reason) for b in blocks] == [(at(MONDAY, 14), "dentist")]


def test_list_blocks_can_exclude_one_block(db, add_block, tutor_id):
    first = add_block(tutor_id, at(MONDAY, 9), at(MONDAY, 10))
    second = add_block(tutor_id, at(MONDAY, 11), at(MONDAY, 12))

    rows = TimeBlockRepository(db).list_blocks(tutor_id, exclude_block_id=first.id)

    assert [row.id for row in rows] == [second.id]
