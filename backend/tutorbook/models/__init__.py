# backend/tutorbook/models/__init__.py
"""
SQLAlchemy models for the tutor booking engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .availability_window import AvailabilityWindow
from .session import SessionStatus, TutoringSession
from .subscription import Subscription
from .time_block import TimeBlock
from .trial_usage import TrialConsumption, TrialUsage

__all__ = [
    "AvailabilityWindow",
    "SessionStatus",
    "Subscription",
    "TimeBlock",
    "TrialConsumption",
    "TrialUsage",
    "TutoringSession",
]
