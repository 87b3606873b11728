# backend/tutorbook/repositories/__init__.py
"""
Repository layer for the tutor booking engine.

Key Components:
- BaseRepository: generic CRUD foundation
- RepositoryFactory: creates repositories for services
- Store interfaces the engine depends on (windows, time blocks, sessions, trial usage)

Usage:
    from tutorbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_session_repository(db)
    booked = repository.get_booked_sessions(tutor_id, range_start, range_end)
"""

from .availability_window_repository import AvailabilityWindowRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .interfaces import (
    AvailabilityWindowStore,
    BookedSessionStore,
    TimeBlockStore,
    TrialUsageStore,
)
from .session_repository import SessionRepository
from .subscription_repository import SubscriptionRepository
from .time_block_repository import TimeBlockRepository
from .trial_usage_repository import TrialUsageRepository

__all__ = [
    "AvailabilityWindowRepository",
    "AvailabilityWindowStore",
    "BaseRepository",
    "BookedSessionStore",
    "RepositoryFactory",
    "SessionRepository",
    "SubscriptionRepository",
    "TimeBlockRepository",
    "TimeBlockStore",
    "TrialUsageRepository",
    "TrialUsageStore",
]
