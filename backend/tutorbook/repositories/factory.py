# backend/tutorbook/repositories/factory.py
"""
Repository Factory for the tutor booking engine

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_window_repository import AvailabilityWindowRepository
    from .session_repository import SessionRepository
    from .subscription_repository import SubscriptionRepository
    from .time_block_repository import TimeBlockRepository
    from .trial_usage_repository import TrialUsageRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_availability_window_repository(db: Session) -> "AvailabilityWindowRepository":
        """Create repository for recurring availability windows."""
        from .availability_window_repository import AvailabilityWindowRepository

        return AvailabilityWindowRepository(db)

    @staticmethod
    def create_session_repository(db: Session) -> "SessionRepository":
        """Create repository for tutoring sessions."""
        from .session_repository import SessionRepository

        return SessionRepository(db)

    @staticmethod
    def create_subscription_repository(db: Session) -> "SubscriptionRepository":
        """Create repository for subscriptions."""
        from .subscription_repository import SubscriptionRepository

        return SubscriptionRepository(db)

    @staticmethod
    def create_time_block_repository(db: Session) -> "TimeBlockRepository":
        """Create repository for tutor time blocks."""
        from .time_block_repository import TimeBlockRepository

        return TimeBlockRepository(db)

    @staticmethod
    def create_trial_usage_repository(db: Session) -> "TrialUsageRepository":
        """Create repository for trial usage counters."""
        from .trial_usage_repository import TrialUsageRepository

        return TrialUsageRepository(db)
