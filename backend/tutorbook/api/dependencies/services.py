# backend/tutorbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.booking_orchestrator import BookingOrchestrator
from ...services.trial_eligibility import TrialEligibilityGuard
from .database import get_db

logger = logging.getLogger(__name__)


def get_booking_orchestrator(db: Session = Depends(get_db)) -> BookingOrchestrator:
    """
    Get booking orchestrator instance.

    Args:
        db: Database session

    Returns:
        BookingOrchestrator wired to the SQLAlchemy stores
    """
    return BookingOrchestrator(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Get availability window service instance."""
    return AvailabilityService(db)


def get_trial_eligibility_guard(db: Session = Depends(get_db)) -> TrialEligibilityGuard:
    """Get trial eligibility guard instance."""
    return TrialEligibilityGuard(db)
