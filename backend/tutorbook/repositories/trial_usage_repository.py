# backend/tutorbook/repositories/trial_usage_repository.py
"""
Trial Usage Repository

Per-parent trial counter plus a consumption ledger keyed by session id, so
that consuming a trial for the same session twice is a no-op.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException, TrialLimitReachedException
from ..models.trial_usage import TrialConsumption, TrialUsage
from .base_repository import BaseRepository
from .interfaces import TrialUsageStore

logger = logging.getLogger(__name__)


class TrialUsageRepository(BaseRepository[TrialUsage], TrialUsageStore):
    def __init__(self, db: Session):
        super().__init__(db, TrialUsage)
        self.logger = logging.getLogger(__name__)

    def get_trial_usage(self, parent_id: str) -> int:
        try:
            usage = self.db.get(TrialUsage, parent_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading trial usage for parent {parent_id}: {str(e)}")
            raise RepositoryException(f"Failed to read trial usage: {str(e)}")
        return usage.trials_used if usage else 0

    def increment_trial_usage(
        self, parent_id: str, session_id: str, trial_cap: Optional[int] = None
    ) -> bool:
        try:
            already_consumed = (
                self.db.query(TrialConsumption.id)
                .filter(TrialConsumption.session_id == session_id)
                .first()
            )
            if already_consumed:
                self.logger.info(
                    "Trial already consumed for session",
                    extra={"parent_id": parent_id, "session_id": session_id},
                )
                return False

            usage = self.db.get(TrialUsage, parent_id, with_for_update=True)
            if usage is None:
                usage = TrialUsage(parent_id=parent_id, trials_used=0)
                self.db.add(usage)

            # Re-checked under the row lock; the eligibility read may be stale
            if trial_cap is not None and (usage.trials_used or 0) >= trial_cap:
                raise TrialLimitReachedException(
                    "Parent has no trial lessons left",
                    code="TRIAL_LIMIT_REACHED",
                    details={
                        "parent_id": parent_id,
                        "trials_used": usage.trials_used,
                        "trial_cap": trial_cap,
                    },
                )

            usage.trials_used = (usage.trials_used or 0) + 1
            self.db.add(TrialConsumption(parent_id=parent_id, session_id=session_id))
            self.db.flush()
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"Error consuming trial for parent {parent_id}: {str(e)}")
            raise RepositoryException(f"Failed to consume trial: {str(e)}")
