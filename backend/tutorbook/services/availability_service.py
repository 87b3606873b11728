# backend/tutorbook/services/availability_service.py
"""
Availability Service for the tutor booking engine

CRUD for a tutor's recurring weekly windows and one-off time blocks.
Malformed windows are refused here, at data entry, with
``InvalidWindowException``; the slot resolver can therefore assume every
stored window is well formed. Time blocks must end after they start and may
not overlap another block of the same tutor. Changing or removing a window
or a block never touches sessions already booked.
"""

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import TIME_OF_DAY_PATTERN
from ..core.exceptions import (
    ConflictException,
    InvalidTimeBlockException,
    InvalidWindowException,
    NotFoundException,
)
from ..core.timezone_utils import minutes_of_day
from ..models.availability_window import AvailabilityWindow
from ..models.time_block import TimeBlock
from ..repositories.availability_window_repository import AvailabilityWindowRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.time_block_repository import TimeBlockRepository
from ..schemas.availability import (
    AvailabilityWindowCreate,
    AvailabilityWindowResponse,
    AvailabilityWindowUpdate,
    TimeBlockCreate,
    TimeBlockResponse,
    TimeBlockUpdate,
)
from .base import BaseService

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(TIME_OF_DAY_PATTERN)


def validate_window(day_of_week: int, start_time: str, end_time: str) -> None:
    """
    Raise ``InvalidWindowException`` unless the window is well formed.

    Well formed means a weekday in 0..6 and zero-padded ``HH:MM`` times with
    start strictly before end.
    """
    details = {"day_of_week": day_of_week, "start_time": start_time, "end_time": end_time}
    if not 0 <= day_of_week <= 6:
        raise InvalidWindowException(
            "day_of_week must be between 0 (Sunday) and 6", details=details
        )
    for value in (start_time, end_time):
        if not _TIME_RE.match(value or ""):
            raise InvalidWindowException(f"Invalid time of day: {value!r}", details=details)
    if minutes_of_day(start_time) >= minutes_of_day(end_time):
        raise InvalidWindowException("Window start must be before its end", details=details)


def validate_time_block(starts_at: int, ends_at: int) -> None:
    if starts_at >= ends_at:
        raise InvalidTimeBlockException(
            "Block start must be before its end",
            details={"starts_at": starts_at, "ends_at": ends_at},
        )


def _to_response(window: AvailabilityWindow) -> AvailabilityWindowResponse:
    return AvailabilityWindowResponse(
        id=window.id,
        tutor_id=window.tutor_id,
        day_of_week=window.day_of_week,
        start_time=window.start_time,
        end_time=window.end_time,
        is_active=window.is_active,
    )


def _to_block_response(block: TimeBlock) -> TimeBlockResponse:
    return TimeBlockResponse(
        id=block.id,
        tutor_id=block.tutor_id,
        starts_at=block.starts_at,
        ends_at=block.ends_at,
        reason=block.reason,
    )


class AvailabilityService(BaseService):
    """Tutor-side management of recurring windows and time blocks."""

    def __init__(
        self,
        db: Session,
        repository: Optional[AvailabilityWindowRepository] = None,
        block_repository: Optional[TimeBlockRepository] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_availability_window_repository(db)
        self.block_repository = (
            block_repository or RepositoryFactory.create_time_block_repository(db)
        )

    def list_windows(self, tutor_id: str) -> List[AvailabilityWindowResponse]:
        return [_to_response(window) for window in self.repository.list_windows(tutor_id)]

    @BaseService.measure_operation("create_window")
    def create_window(
        self, tutor_id: str, data: AvailabilityWindowCreate
    ) -> AvailabilityWindowResponse:
        validate_window(data.day_of_week, data.start_time, data.end_time)
        self.log_operation("create_window", tutor_id=tutor_id, day_of_week=data.day_of_week)

        with self.transaction():
            window = self.repository.create(
                tutor_id=tutor_id,
                day_of_week=data.day_of_week,
                start_time=data.start_time,
                end_time=data.end_time,
                is_active=data.is_active,
            )
        return _to_response(window)

    @BaseService.measure_operation("update_window")
    def update_window(
        self, window_id: str, data: AvailabilityWindowUpdate
    ) -> AvailabilityWindowResponse:
        """
        Apply a partial update.

        The merged window is validated as a whole, so moving only ``end_time``
        before the existing ``start_time`` is refused.
        """
        window = self.repository.get_by_id(window_id)
        if window is None:
            raise NotFoundException(f"Availability window {window_id} not found")

        changes = data.model_dump(exclude_unset=True)
        validate_window(
            changes.get("day_of_week", window.day_of_week),
            changes.get("start_time", window.start_time),
            changes.get("end_time", window.end_time),
        )
        self.log_operation("update_window", window_id=window_id, fields=sorted(changes))

        with self.transaction():
            updated = self.repository.update(window_id, **changes)
            if updated is None:
                raise NotFoundException(f"Availability window {window_id} not found")
        return _to_response(updated)

    @BaseService.measure_operation("delete_window")
    def delete_window(self, window_id: str) -> None:
        with self.transaction():
            deleted = self.repository.delete(window_id)
        if not deleted:
            raise NotFoundException(f"Availability window {window_id} not found")
        self.log_operation("delete_window", window_id=window_id)

    # Time blocks

    def _ensure_no_block_overlap(
        self,
        tutor_id: str,
        starts_at: int,
        ends_at: int,
        exclude_block_id: Optional[str] = None,
    ) -> None:
        overlapping = self.block_repository.list_blocks(
            tutor_id, starts_at, ends_at, exclude_block_id=exclude_block_id
        )
        if overlapping:
            raise ConflictException(
                "This time period overlaps with an existing block",
                code="TIME_BLOCK_OVERLAP",
                details={
                    "starts_at": starts_at,
                    "ends_at": ends_at,
                    "time_block_ids": [block.id for block in overlapping],
                },
            )

    def list_blocks(
        self,
        tutor_id: str,
        range_start: Optional[int] = None,
        range_end: Optional[int] = None,
    ) -> List[TimeBlockResponse]:
        return [
            _to_block_response(block)
            for block in self.block_repository.list_blocks(tutor_id, range_start, range_end)
        ]

    @BaseService.measure_operation("create_time_block")
    def create_block(self, tutor_id: str, data: TimeBlockCreate) -> TimeBlockResponse:
        """
        Block ``[starts_at, ends_at)`` on the tutor's calendar.

        Raises:
            InvalidTimeBlockException: start is not before end
            ConflictException: the interval overlaps another block of the tutor
        """
        validate_time_block(data.starts_at, data.ends_at)
        self.log_operation("create_time_block", tutor_id=tutor_id, starts_at=data.starts_at)

        with self.transaction():
            self._ensure_no_block_overlap(tutor_id, data.starts_at, data.ends_at)
            block = self.block_repository.create(
                tutor_id=tutor_id,
                starts_at=data.starts_at,
                ends_at=data.ends_at,
                reason=data.reason,
            )
        return _to_block_response(block)

    @BaseService.measure_operation("update_time_block")
    def update_block(self, block_id: str, data: TimeBlockUpdate) -> TimeBlockResponse:
        block = self.block_repository.get_by_id(block_id)
        if block is None:
            raise NotFoundException(f"Time block {block_id} not found")

        changes = data.model_dump(exclude_unset=True)
        starts_at = changes.get("starts_at", block.starts_at)
        ends_at = changes.get("ends_at", block.ends_at)
        validate_time_block(starts_at, ends_at)
        self.log_operation("update_time_block", block_id=block_id, fields=sorted(changes))

        with self.transaction():
            self._ensure_no_block_overlap(
                block.tutor_id, starts_at, ends_at, exclude_block_id=block_id
            )
            updated = self.block_repository.update(block_id, **changes)
            if updated is None:
                raise NotFoundException(f"Time block {block_id} not found")
        return _to_block_response(updated)

    @BaseService.measure_operation("delete_time_block")
    def delete_block(self, block_id: str) -> None:
        with self.transaction():
            deleted = self.block_repository.delete(block_id)
        if not deleted:
            raise NotFoundException(f"Time block {block_id} not found")
        self.log_operation("delete_time_block", block_id=block_id)
