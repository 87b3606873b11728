# backend/tutorbook/models/availability_window.py
"""
Recurring weekly availability for a tutor.

A window says "every <day_of_week> from start_time to end_time" in the
canonical zone. Several windows may exist for the same day and they are
allowed to overlap; slot resolution tolerates that.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class AvailabilityWindow(Base):
    """One recurring weekly window. Times are zero-padded ``HH:MM`` strings."""

    __tablename__ = "availability_windows"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_availability_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availability_start_before_end"),
        Index("ix_availability_windows_tutor_day", "tutor_id", "day_of_week"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(26), nullable=False, index=True)

    # 0 = Sunday ... 6 = Saturday
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return (
            f"<AvailabilityWindow tutor={self.tutor_id} day={self.day_of_week} "
            f"{self.start_time}-{self.end_time} active={self.is_active}>"
        )
