# backend/tutorbook/schemas/availability.py
"""
Schemas for recurring availability windows and resolved slots.
"""

from typing import List, Optional

from pydantic import Field, model_validator

from ..core.constants import MAX_REASON_LENGTH, TIME_OF_DAY_PATTERN
from ..core.timezone_utils import minutes_of_day
from ..services.conflict_detector import Interval
from ._strict_base import FrozenModel, StrictModel, StrictRequestModel


class AvailabilityWindowData(FrozenModel):
    """Engine-side snapshot of one recurring weekly window."""

    id: Optional[str] = None
    tutor_id: str
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool = True


class AvailabilityWindowCreate(StrictRequestModel):
    """Tutor-entered window. ``start_time`` must be before ``end_time``."""

    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str = Field(..., pattern=TIME_OF_DAY_PATTERN, examples=["09:00"])
    end_time: str = Field(..., pattern=TIME_OF_DAY_PATTERN, examples=["11:00"])
    is_active: bool = True

    @model_validator(mode="after")
    def validate_order(self) -> "AvailabilityWindowCreate":
        if minutes_of_day(self.end_time) <= minutes_of_day(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class AvailabilityWindowUpdate(StrictRequestModel):
    """Partial update; the resulting window is re-validated by the service."""

    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    is_active: Optional[bool] = None


class AvailabilityWindowResponse(StrictModel):
    id: str
    tutor_id: str
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool


class TimeBlockData(FrozenModel):
    """Engine-side snapshot of one blocked interval."""

    id: str
    tutor_id: str
    starts_at: int
    ends_at: int
    reason: Optional[str] = None

    @property
    def interval(self) -> Interval:
        return Interval(self.starts_at, self.ends_at)


class TimeBlockCreate(StrictRequestModel):
    """
    Blocked interval in epoch milliseconds.

    Ordering is checked by the service so that malformed blocks surface as
    ``INVALID_TIME_BLOCK`` rather than a generic validation error.
    """

    starts_at: int = Field(..., gt=0, description="Block start, epoch milliseconds")
    ends_at: int = Field(..., gt=0, description="Block end (exclusive), epoch milliseconds")
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class TimeBlockUpdate(StrictRequestModel):
    starts_at: Optional[int] = Field(None, gt=0)
    ends_at: Optional[int] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class TimeBlockResponse(StrictModel):
    id: str
    tutor_id: str
    starts_at: int
    ends_at: int
    reason: Optional[str] = None


class SlotResponse(StrictModel):
    start: int = Field(..., description="Slot start, epoch milliseconds")
    end: int = Field(..., description="Slot end (exclusive), epoch milliseconds")


class SlotPreviewResponse(StrictModel):
    tutor_id: str
    horizon_start: int
    horizon_end: int
    slot_duration: int
    step_minutes: int
    slots: List[SlotResponse]
