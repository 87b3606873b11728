# backend/tutorbook/routes/parents.py
"""
Parent routes - API v1

Endpoints:
    GET /{parent_id}/trial-eligibility - Remaining trial lessons
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_trial_eligibility_guard
from ..schemas.booking import TrialEligibilityResponse
from ..services.trial_eligibility import TrialEligibilityGuard

logger = logging.getLogger(__name__)

router = APIRouter(tags=["parents-v1"])


@router.get("/{parent_id}/trial-eligibility", response_model=TrialEligibilityResponse)
async def get_trial_eligibility(
    parent_id: str,
    course_id: Optional[str] = Query(None, max_length=26),
    guard: TrialEligibilityGuard = Depends(get_trial_eligibility_guard),
) -> TrialEligibilityResponse:
    eligibility = await asyncio.to_thread(guard.check_eligibility, parent_id, course_id)
    return TrialEligibilityResponse(
        parent_id=parent_id,
        course_id=course_id,
        eligible=eligibility.eligible,
        trials_used=eligibility.trials_used,
        trials_remaining=eligibility.trials_remaining,
        trial_cap=eligibility.trial_cap,
    )
