# backend/tutorbook/schemas/booking.py
"""
Booking outcome types and series/trial DTOs.

Every orchestrator operation returns a ``BookingOutcome``: either the
affected sessions or one ``BookingRejection``. Rejections are values; the
HTTP layer turns them into domain exceptions with ``to_exception``.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import Field, field_validator

from ..core.constants import (
    MAX_REASON_LENGTH,
    MAX_SERIES_OCCURRENCES,
    MAX_SESSION_DURATION,
    MAX_STUDENT_NAME_LENGTH,
    MIN_SESSION_DURATION,
)
from ..core.enums import RecurrenceFrequency, RejectionCode
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    DomainException,
    InsufficientNoticeException,
    InvalidStatusTransitionException,
    InvalidWindowException,
    NotFoundException,
    SeriesConflictException,
    TrialLimitReachedException,
)
from ._strict_base import FrozenModel, StrictModel, StrictRequestModel
from .session import SessionData, SessionResponse

SLOT_NO_LONGER_AVAILABLE = "This time slot is no longer available"

_EXCEPTION_BY_CODE: Dict[RejectionCode, Type[DomainException]] = {
    RejectionCode.SLOT_UNAVAILABLE: BookingConflictException,
    RejectionCode.CONCURRENT_BOOKING_CONFLICT: BookingConflictException,
    RejectionCode.SERIES_CONFLICT: SeriesConflictException,
    RejectionCode.MODIFICATION_NOT_ALLOWED: InsufficientNoticeException,
    RejectionCode.TRIAL_LIMIT_REACHED: TrialLimitReachedException,
    RejectionCode.SESSION_NOT_FOUND: NotFoundException,
    RejectionCode.INVALID_STATUS_TRANSITION: InvalidStatusTransitionException,
    RejectionCode.NO_SCHEDULED_SESSIONS: BusinessRuleException,
    RejectionCode.SUBSCRIPTION_MISMATCH: BusinessRuleException,
}


class BookingRejection(FrozenModel):
    code: RejectionCode
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    def to_exception(self) -> DomainException:
        """Matching domain exception, carrying the same code and details."""
        if self.code is RejectionCode.INVALID_WINDOW:
            return InvalidWindowException(self.message, details=dict(self.details))
        exc_class = _EXCEPTION_BY_CODE[self.code]
        return exc_class(self.message, code=self.code.value, details=dict(self.details))


class BookingOutcome(FrozenModel):
    operation: str
    ok: bool
    sessions: Tuple[SessionData, ...] = ()
    rejection: Optional[BookingRejection] = None

    @classmethod
    def success(cls, operation: str, *sessions: SessionData) -> "BookingOutcome":
        return cls(operation=operation, ok=True, sessions=tuple(sessions))

    @classmethod
    def rejected(
        cls,
        operation: str,
        code: RejectionCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "BookingOutcome":
        return cls(
            operation=operation,
            ok=False,
            rejection=BookingRejection(code=code, message=message, details=details or {}),
        )

    @property
    def session(self) -> Optional[SessionData]:
        return self.sessions[0] if self.sessions else None


class SeriesBookRequest(StrictRequestModel):
    """
    Book several sessions of a subscription in one request.

    Tutor and parent come from the subscription. Every start is validated
    before anything is written.
    """

    student_name: str = Field(..., min_length=1, max_length=MAX_STUDENT_NAME_LENGTH)
    duration: int = Field(..., ge=MIN_SESSION_DURATION, le=MAX_SESSION_DURATION)
    scheduled_at: List[int] = Field(
        ...,
        min_length=1,
        max_length=MAX_SERIES_OCCURRENCES,
        description="Occurrence starts, epoch milliseconds",
    )
    course_id: Optional[str] = Field(None, max_length=26)

    @field_validator("scheduled_at")
    @classmethod
    def validate_starts(cls, starts: List[int]) -> List[int]:
        if any(start <= 0 for start in starts):
            raise ValueError("Occurrence starts must be positive epoch milliseconds")
        return starts


class SeriesRescheduleRequest(StrictRequestModel):
    new_anchor_date: date = Field(..., description="Date of the first regenerated session")
    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY


class SeriesCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class SeriesResponse(StrictModel):
    subscription_id: str
    sessions: List[SessionResponse]


class TrialEligibilityResponse(StrictModel):
    parent_id: str
    course_id: Optional[str] = None
    eligible: bool
    trials_used: int
    trials_remaining: int
    trial_cap: int
