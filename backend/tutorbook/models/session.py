# backend/tutorbook/models/session.py
"""
Tutoring session model.

A session occupies the half-open interval
``[scheduled_at, scheduled_at + duration * 60000)`` on its tutor's calendar.
Cancelled sessions occupy no time. Status only moves forward:
``scheduled -> {completed, no_show, cancelled}``.
"""

from enum import Enum
from typing import FrozenSet

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import MS_PER_MINUTE
from ..database import Base


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"

    @property
    def occupies_time(self) -> bool:
        return self is not SessionStatus.CANCELLED

    def can_transition_to(self, target: "SessionStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.NO_SHOW, SessionStatus.CANCELLED}
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.NO_SHOW: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

OCCUPYING_STATUSES = tuple(s.value for s in SessionStatus if s.occupies_time)


class TutoringSession(Base):
    """One-on-one session between a tutor and a parent's student."""

    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_sessions_duration_positive"),
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'no_show', 'cancelled')",
            name="ck_sessions_status",
        ),
        # Two live sessions of a tutor can never share a start instant.
        Index(
            "uq_sessions_tutor_start_live",
            "tutor_id",
            "scheduled_at",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        Index("ix_sessions_tutor_scheduled_at", "tutor_id", "scheduled_at"),
        Index("ix_sessions_parent_trial", "parent_id", "is_trial"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    subscription_id = Column(
        String(26), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=True, index=True
    )
    tutor_id = Column(String(26), nullable=False, index=True)
    parent_id = Column(String(26), nullable=False, index=True)
    course_id = Column(String(26), nullable=True)
    student_name = Column(String(255), nullable=False)
    is_trial = Column(Boolean, nullable=False, default=False)

    # Epoch milliseconds
    scheduled_at = Column(BigInteger, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes

    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value, index=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    subscription = relationship("Subscription", back_populates="sessions")

    @property
    def ends_at(self) -> int:
        return self.scheduled_at + self.duration * MS_PER_MINUTE

    @property
    def session_status(self) -> SessionStatus:
        return SessionStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<TutoringSession {self.id} tutor={self.tutor_id} at={self.scheduled_at} "
            f"status={self.status}>"
        )
