# backend/tutorbook/repositories/time_block_repository.py
"""
Time Block Repository

Data access for one-off blocked intervals on a tutor's calendar.
"""

import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.time_block import TimeBlock
from ..schemas.availability import TimeBlockData
from .base_repository import BaseRepository
from .interfaces import TimeBlockStore

logger = logging.getLogger(__name__)


class TimeBlockRepository(BaseRepository[TimeBlock], TimeBlockStore):
    def __init__(self, db: Session):
        super().__init__(db, TimeBlock)
        self.logger = logging.getLogger(__name__)

    def list_blocks(
        self,
        tutor_id: str,
        range_start: Optional[int] = None,
        range_end: Optional[int] = None,
        exclude_block_id: Optional[str] = None,
    ) -> List[TimeBlock]:
        """Blocks of a tutor ordered by start, optionally limited to an intersecting range."""
        try:
            query = self.db.query(TimeBlock).filter(TimeBlock.tutor_id == tutor_id)
            if range_end is not None:
                query = query.filter(TimeBlock.starts_at < range_end)
            if range_start is not None:
                query = query.filter(TimeBlock.ends_at > range_start)
            if exclude_block_id:
                query = query.filter(TimeBlock.id != exclude_block_id)
            return cast(List[TimeBlock], query.order_by(TimeBlock.starts_at).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing time blocks for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to list time blocks: {str(e)}")

    def get_time_blocks(self, tutor_id: str, range_start: int, range_end: int) -> List[TimeBlockData]:
        return [
            TimeBlockData.model_validate(row)
            for row in self.list_blocks(tutor_id, range_start, range_end)
        ]
