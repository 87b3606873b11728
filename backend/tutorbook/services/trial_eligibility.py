# backend/tutorbook/services/trial_eligibility.py
"""
Trial Eligibility Guard

A parent may book at most ``trial_cap`` trial lessons, across all courses.
Eligibility is read from the trial usage store; a trial is consumed only
after the trial booking has been written, and consuming it again for the
same session changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..repositories.factory import RepositoryFactory
from ..repositories.interfaces import TrialUsageStore
from .base import BaseService
from .policy import BookingPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrialEligibility:
    eligible: bool
    trials_remaining: int
    trials_used: int = 0
    trial_cap: int = 0


def evaluate_trial_eligibility(trials_used: int, trial_cap: int) -> TrialEligibility:
    """Eligible iff ``trials_used < trial_cap``."""
    remaining = max(trial_cap - trials_used, 0)
    return TrialEligibility(
        eligible=trials_used < trial_cap,
        trials_remaining=remaining,
        trials_used=trials_used,
        trial_cap=trial_cap,
    )


class TrialEligibilityGuard(BaseService):
    def __init__(
        self,
        db: Session,
        trial_store: Optional[TrialUsageStore] = None,
        policy: Optional[BookingPolicy] = None,
    ):
        super().__init__(db)
        self.trial_store = trial_store or RepositoryFactory.create_trial_usage_repository(db)
        self.policy = policy or BookingPolicy.from_settings()

    def check_eligibility(self, parent_id: str, course_id: Optional[str] = None) -> TrialEligibility:
        """
        Trial eligibility for a parent.

        ``course_id`` is accepted for callers that book per course; the cap
        applies across courses, so it does not change the answer.
        """
        used = self.trial_store.get_trial_usage(parent_id)
        result = evaluate_trial_eligibility(used, self.policy.trial_cap)
        self.logger.debug(
            "Trial eligibility for parent %s (course %s): used=%d cap=%d",
            parent_id,
            course_id,
            used,
            self.policy.trial_cap,
        )
        return result

    def consume_trial(self, parent_id: str, session_id: str) -> bool:
        """
        Record the trial used by ``session_id``.

        Runs inside the caller's transaction. Returns False when the session
        already consumed a trial. The cap is enforced again by the store so a
        concurrent booking cannot push the parent past it.

        Raises:
            TrialLimitReachedException: the parent has no trials left
        """
        consumed = self.trial_store.increment_trial_usage(
            parent_id, session_id, trial_cap=self.policy.trial_cap
        )
        if consumed:
            self.logger.info(
                "Trial consumed", extra={"parent_id": parent_id, "session_id": session_id}
            )
        return consumed
