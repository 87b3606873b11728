# backend/tutorbook/api/dependencies/__init__.py
"""
FastAPI dependencies.

Usage:
    from tutorbook.api.dependencies import get_db, get_booking_orchestrator
"""

from .database import get_db
from .services import (
    get_availability_service,
    get_booking_orchestrator,
    get_trial_eligibility_guard,
)

__all__ = [
    "get_availability_service",
    "get_booking_orchestrator",
    "get_db",
    "get_trial_eligibility_guard",
]
