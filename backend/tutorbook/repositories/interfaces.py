# backend/tutorbook/repositories/interfaces.py
"""
Store interfaces the booking engine depends on.

Services only talk to these abstractions so the engine can be exercised
against fakes as well as the SQLAlchemy repositories.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from ..models.session import SessionStatus
from ..schemas.availability import AvailabilityWindowData, TimeBlockData
from ..schemas.session import SessionData


class AvailabilityWindowStore(ABC):
    @abstractmethod
    def get_availability_windows(self, tutor_id: str) -> List[AvailabilityWindowData]:
        """All windows of a tutor, active or not."""


class TimeBlockStore(ABC):
    @abstractmethod
    def get_time_blocks(
        self, tutor_id: str, range_start: int, range_end: int
    ) -> List[TimeBlockData]:
        """Blocks of a tutor whose interval intersects ``[range_start, range_end)``."""


class BookedSessionStore(ABC):
    @abstractmethod
    def get_session(self, session_id: str) -> Optional[SessionData]:
        """One session by id, or None."""

    @abstractmethod
    def get_booked_sessions(
        self,
        tutor_id: str,
        range_start: int,
        range_end: int,
        exclude_session_id: Optional[str] = None,
    ) -> List[SessionData]:
        """
        Live sessions of a tutor whose interval intersects ``[range_start, range_end)``.

        Cancelled sessions and ``exclude_session_id`` are never returned.
        """

    @abstractmethod
    def get_series_sessions(self, subscription_id: str) -> List[SessionData]:
        """Non-cancelled sessions of a subscription ordered by start."""

    @abstractmethod
    def insert_session(self, **fields) -> SessionData:
        """
        Insert a scheduled session.

        Raises:
            BookingConflictException: a live session of the same tutor now
                overlaps the interval
        """

    @abstractmethod
    def update_session_schedule(self, session_id: str, new_scheduled_at: int) -> SessionData:
        """Move one session. Same conflict contract as ``insert_session``."""

    @abstractmethod
    def update_series_schedule(
        self, subscription_id: str, changes: Sequence[Tuple[str, int]]
    ) -> List[SessionData]:
        """Move every listed session of a series, all or nothing."""

    @abstractmethod
    def set_session_status(
        self, session_id: str, status: SessionStatus, reason: Optional[str] = None
    ) -> SessionData:
        """Apply a lifecycle transition."""


class TrialUsageStore(ABC):
    @abstractmethod
    def get_trial_usage(self, parent_id: str) -> int:
        """Trials consumed by a parent; 0 when nothing was recorded."""

    @abstractmethod
    def increment_trial_usage(
        self, parent_id: str, session_id: str, trial_cap: Optional[int] = None
    ) -> bool:
        """
        Consume one trial for ``session_id``.

        Returns False, without changing the counter, when that session
        already consumed a trial.

        Raises:
            TrialLimitReachedException: ``trial_cap`` is given and the
                parent already used that many trials
        """
