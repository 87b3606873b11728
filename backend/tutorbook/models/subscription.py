# backend/tutorbook/models/subscription.py
"""Subscription: the anchor of a recurring series of sessions."""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Subscription(Base):
    """
    A parent's enrollment with a tutor.

    The subscription's non-cancelled sessions form its series.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("total_sessions > 0", name="ck_subscriptions_total_sessions_positive"),
        CheckConstraint("sessions_per_week > 0", name="ck_subscriptions_sessions_per_week_positive"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(26), nullable=False, index=True)
    parent_id = Column(String(26), nullable=False, index=True)
    course_id = Column(String(26), nullable=True)
    total_sessions = Column(Integer, nullable=False)
    sessions_per_week = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    sessions = relationship("TutoringSession", back_populates="subscription")

    def __repr__(self) -> str:
        return f"<Subscription {self.id} tutor={self.tutor_id} parent={self.parent_id}>"
