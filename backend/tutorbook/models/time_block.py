# backend/tutorbook/models/time_block.py
"""
One-off blocked time on a tutor's calendar.

A block takes an absolute interval out of the tutor's recurring
availability (a day off, an appointment). Blocks of the same tutor never
overlap each other; the availability service enforces that on write.
"""

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Index, String
from sqlalchemy.sql import func
import ulid

from ..core.constants import MAX_REASON_LENGTH
from ..database import Base


class TimeBlock(Base):
    """Blocked interval ``[starts_at, ends_at)`` in epoch milliseconds."""

    __tablename__ = "tutor_time_blocks"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_time_block_start_before_end"),
        Index("ix_tutor_time_blocks_tutor_start", "tutor_id", "starts_at"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(26), nullable=False, index=True)
    starts_at = Column(BigInteger, nullable=False)
    ends_at = Column(BigInteger, nullable=False)
    reason = Column(String(MAX_REASON_LENGTH), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<TimeBlock tutor={self.tutor_id} {self.starts_at}-{self.ends_at}>"
