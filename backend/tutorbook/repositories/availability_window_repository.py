# backend/tutorbook/repositories/availability_window_repository.py
"""
Availability Window Repository

Data access for recurring weekly windows. Engine reads return frozen
``AvailabilityWindowData`` snapshots; CRUD helpers return ORM rows for the
availability service.
"""

import logging
from typing import List, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability_window import AvailabilityWindow
from ..schemas.availability import AvailabilityWindowData
from .base_repository import BaseRepository
from .interfaces import AvailabilityWindowStore

logger = logging.getLogger(__name__)


class AvailabilityWindowRepository(BaseRepository[AvailabilityWindow], AvailabilityWindowStore):
    def __init__(self, db: Session):
        super().__init__(db, AvailabilityWindow)
        self.logger = logging.getLogger(__name__)

    def list_windows(self, tutor_id: str) -> List[AvailabilityWindow]:
        """Windows of a tutor ordered by weekday then start time."""
        try:
            return cast(
                List[AvailabilityWindow],
                self.db.query(AvailabilityWindow)
                .filter(AvailabilityWindow.tutor_id == tutor_id)
                .order_by(AvailabilityWindow.day_of_week, AvailabilityWindow.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing windows for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to list availability windows: {str(e)}")

    def get_availability_windows(self, tutor_id: str) -> List[AvailabilityWindowData]:
        return [AvailabilityWindowData.model_validate(row) for row in self.list_windows(tutor_id)]
