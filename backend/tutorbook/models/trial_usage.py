# backend/tutorbook/models/trial_usage.py
"""
Trial lesson bookkeeping.

``TrialUsage`` holds the per-parent counter; ``TrialConsumption`` records
which session consumed a credit so a retried request cannot consume twice.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class TrialUsage(Base):
    __tablename__ = "trial_usage"
    __table_args__ = (CheckConstraint("trials_used >= 0", name="ck_trial_usage_non_negative"),)

    parent_id = Column(String(26), primary_key=True)
    trials_used = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<TrialUsage parent={self.parent_id} used={self.trials_used}>"


class TrialConsumption(Base):
    __tablename__ = "trial_consumptions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    parent_id = Column(String(26), nullable=False, index=True)
    session_id = Column(String(26), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<TrialConsumption parent={self.parent_id} session={self.session_id}>"
