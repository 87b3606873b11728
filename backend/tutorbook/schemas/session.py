# backend/tutorbook/schemas/session.py
"""
Session value objects and request/response DTOs.
"""

from typing import Optional

from pydantic import Field, model_validator

from ..core.constants import (
    MAX_REASON_LENGTH,
    MAX_SESSION_DURATION,
    MAX_STUDENT_NAME_LENGTH,
    MIN_SESSION_DURATION,
)
from ..models.session import SessionStatus
from ..services.conflict_detector import Interval
from ._strict_base import FrozenModel, StrictModel, StrictRequestModel


class SessionData(FrozenModel):
    """
    Immutable snapshot of a session as the engine sees it.

    ``status`` is an enumerated ``SessionStatus``; anything else fails
    validation when the snapshot is built.
    """

    id: str
    subscription_id: Optional[str] = None
    tutor_id: str
    parent_id: str
    student_name: str
    course_id: Optional[str] = None
    is_trial: bool = False
    scheduled_at: int
    duration: int = Field(..., gt=0)
    status: SessionStatus = SessionStatus.SCHEDULED
    cancellation_reason: Optional[str] = None

    @property
    def ends_at(self) -> int:
        return self.interval.end

    @property
    def interval(self) -> Interval:
        return Interval.from_duration(self.scheduled_at, self.duration)

    @property
    def occupies_time(self) -> bool:
        return self.status.occupies_time


class SessionBookRequest(StrictRequestModel):
    tutor_id: str = Field(..., min_length=1, max_length=26)
    parent_id: str = Field(..., min_length=1, max_length=26)
    student_name: str = Field(..., min_length=1, max_length=MAX_STUDENT_NAME_LENGTH)
    scheduled_at: int = Field(..., gt=0, description="Start, epoch milliseconds")
    duration: int = Field(..., ge=MIN_SESSION_DURATION, le=MAX_SESSION_DURATION)
    subscription_id: Optional[str] = Field(None, max_length=26)
    course_id: Optional[str] = Field(None, max_length=26)
    is_trial: bool = False

    @model_validator(mode="after")
    def validate_trial_has_no_subscription(self) -> "SessionBookRequest":
        if self.is_trial and self.subscription_id:
            raise ValueError("Trial sessions are not part of a subscription")
        return self


class SessionRescheduleRequest(StrictRequestModel):
    new_scheduled_at: int = Field(..., gt=0, description="New start, epoch milliseconds")


class SessionCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class SessionResponse(StrictModel):
    id: str
    subscription_id: Optional[str]
    tutor_id: str
    parent_id: str
    student_name: str
    course_id: Optional[str]
    is_trial: bool
    scheduled_at: int
    ends_at: int
    duration: int
    status: SessionStatus
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_data(cls, data: SessionData) -> "SessionResponse":
        return cls(
            id=data.id,
            subscription_id=data.subscription_id,
            tutor_id=data.tutor_id,
            parent_id=data.parent_id,
            student_name=data.student_name,
            course_id=data.course_id,
            is_trial=data.is_trial,
            scheduled_at=data.scheduled_at,
            ends_at=data.ends_at,
            duration=data.duration,
            status=data.status,
            cancellation_reason=data.cancellation_reason,
        )
