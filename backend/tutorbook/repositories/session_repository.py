# backend/tutorbook/repositories/session_repository.py
"""
Session Repository for the tutor booking engine

Owns every write to the sessions table. Writes re-check the tutor's live
sessions inside the caller's transaction and rely on the partial unique
index ``(tutor_id, scheduled_at) WHERE status != 'cancelled'`` as the last
line against concurrent inserts. Either check failing surfaces as
``BookingConflictException`` with code ``CONCURRENT_BOOKING_CONFLICT``.

Nothing here commits or rolls back; the calling service's transaction does.
"""

from datetime import datetime, timezone
import logging
from typing import Collection, Dict, List, Optional, Sequence, Tuple, cast

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import MAX_SESSION_DURATION, MS_PER_MINUTE
from ..core.enums import RejectionCode
from ..core.exceptions import (
    BookingConflictException,
    InvalidStatusTransitionException,
    NotFoundException,
    RepositoryException,
)
from ..models.session import OCCUPYING_STATUSES, SessionStatus, TutoringSession
from ..schemas.session import SessionData
from ..services.conflict_detector import Interval
from .base_repository import BaseRepository
from .interfaces import BookedSessionStore

logger = logging.getLogger(__name__)

# Upper bound on how far back a live session can start and still reach a range.
_LOOKBACK_MS = MAX_SESSION_DURATION * MS_PER_MINUTE


def _to_data(row: TutoringSession) -> SessionData:
    return SessionData.model_validate(row)


class SessionRepository(BaseRepository[TutoringSession], BookedSessionStore):
    """Data access for tutoring sessions."""

    def __init__(self, db: Session):
        super().__init__(db, TutoringSession)
        self.logger = logging.getLogger(__name__)

    # Reads

    def get_session(self, session_id: str) -> Optional[SessionData]:
        row = self.get_by_id(session_id)
        return _to_data(row) if row else None

    def _live_rows_in_range(
        self,
        tutor_id: str,
        range_start: int,
        range_end: int,
        exclude_session_ids: Optional[Collection[str]] = None,
    ) -> List[TutoringSession]:
        try:
            query = self.db.query(TutoringSession).filter(
                TutoringSession.tutor_id == tutor_id,
                TutoringSession.status.in_(OCCUPYING_STATUSES),
                TutoringSession.scheduled_at < range_end,
                TutoringSession.scheduled_at > range_start - _LOOKBACK_MS,
                TutoringSession.scheduled_at + TutoringSession.duration * MS_PER_MINUTE
                > range_start,
            )
            if exclude_session_ids:
                query = query.filter(TutoringSession.id.notin_(list(exclude_session_ids)))
            return cast(
                List[TutoringSession],
                query.order_by(TutoringSession.scheduled_at, TutoringSession.id).all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booked sessions for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booked sessions: {str(e)}")

    def get_booked_sessions(
        self,
        tutor_id: str,
        range_start: int,
        range_end: int,
        exclude_session_id: Optional[str] = None,
    ) -> List[SessionData]:
        excluded = (exclude_session_id,) if exclude_session_id else None
        rows = self._live_rows_in_range(tutor_id, range_start, range_end, excluded)
        return [_to_data(row) for row in rows]

    def get_series_sessions(self, subscription_id: str) -> List[SessionData]:
        try:
            rows = (
                self.db.query(TutoringSession)
                .filter(
                    TutoringSession.subscription_id == subscription_id,
                    TutoringSession.status.in_(OCCUPYING_STATUSES),
                )
                .order_by(TutoringSession.scheduled_at, TutoringSession.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting series {subscription_id}: {str(e)}")
            raise RepositoryException(f"Failed to get series sessions: {str(e)}")
        return [_to_data(row) for row in rows]

    # Writes

    def _ensure_free(
        self,
        tutor_id: str,
        candidate: Interval,
        exclude_session_ids: Optional[Collection[str]] = None,
    ) -> None:
        clashes = self._live_rows_in_range(
            tutor_id, candidate.start, candidate.end, exclude_session_ids
        )
        if clashes:
            self.logger.warning(
                "Write-time overlap detected",
                extra={
                    "tutor_id": tutor_id,
                    "scheduled_at": candidate.start,
                    "conflicting_session_ids": [row.id for row in clashes],
                },
            )
            raise BookingConflictException(
                "This time slot is no longer available",
                code=RejectionCode.CONCURRENT_BOOKING_CONFLICT.value,
                details={"conflicting_session_ids": [row.id for row in clashes]},
            )

    def _flush_or_conflict(self, tutor_id: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.logger.warning(
                "Unique start constraint rejected write", extra={"tutor_id": tutor_id}
            )
            raise BookingConflictException(
                "This time slot is no longer available",
                code=RejectionCode.CONCURRENT_BOOKING_CONFLICT.value,
            ) from exc

    def _get_row_or_raise(self, session_id: str) -> TutoringSession:
        row = self.get_by_id(session_id, for_update=True)
        if row is None:
            raise NotFoundException(
                f"Session {session_id} not found", code=RejectionCode.SESSION_NOT_FOUND.value
            )
        return row

    def insert_session(self, **fields) -> SessionData:
        tutor_id = fields["tutor_id"]
        self._ensure_free(
            tutor_id, Interval.from_duration(fields["scheduled_at"], fields["duration"])
        )

        row = TutoringSession(status=SessionStatus.SCHEDULED.value, **fields)
        self.db.add(row)
        self._flush_or_conflict(tutor_id)
        return _to_data(row)

    def update_session_schedule(self, session_id: str, new_scheduled_at: int) -> SessionData:
        row = self._get_row_or_raise(session_id)
        self._ensure_free(
            row.tutor_id,
            Interval.from_duration(new_scheduled_at, row.duration),
            exclude_session_ids=(row.id,),
        )
        row.scheduled_at = new_scheduled_at
        self._flush_or_conflict(row.tutor_id)
        return _to_data(row)

    def update_series_schedule(
        self, subscription_id: str, changes: Sequence[Tuple[str, int]]
    ) -> List[SessionData]:
        """
        Move several sessions of one subscription in a single unit of work.

        Rows are first parked on distinct negative placeholders and flushed, then
        given their final starts, so swapping starts inside the series never
        trips the unique start index mid-update.
        """
        if not changes:
            return []

        targets: Dict[str, int] = dict(changes)
        rows = (
            self.db.query(TutoringSession)
            .filter(
                TutoringSession.id.in_(list(targets)),
                TutoringSession.subscription_id == subscription_id,
            )
            .with_for_update()
            .all()
        )
        missing = set(targets) - {row.id for row in rows}
        if missing:
            raise NotFoundException(
                f"Sessions not found in subscription {subscription_id}",
                code=RejectionCode.SESSION_NOT_FOUND.value,
                details={"session_ids": sorted(missing)},
            )

        for row in rows:
            self._ensure_free(
                row.tutor_id,
                Interval.from_duration(targets[row.id], row.duration),
                exclude_session_ids=targets.keys(),
            )

        for offset, row in enumerate(rows, start=1):
            row.scheduled_at = -offset
        self._flush_or_conflict(rows[0].tutor_id)

        for row in rows:
            row.scheduled_at = targets[row.id]
        self._flush_or_conflict(rows[0].tutor_id)

        return sorted((_to_data(row) for row in rows), key=lambda s: (s.scheduled_at, s.id))

    def set_session_status(
        self, session_id: str, status: SessionStatus, reason: Optional[str] = None
    ) -> SessionData:
        row = self._get_row_or_raise(session_id)
        current = row.session_status
        if not current.can_transition_to(status):
            raise InvalidStatusTransitionException(
                f"Cannot change session from {current.value} to {status.value}",
                code=RejectionCode.INVALID_STATUS_TRANSITION.value,
                details={"session_id": session_id, "status": current.value},
            )

        row.status = status.value
        if status is SessionStatus.CANCELLED:
            row.cancellation_reason = reason
            row.cancelled_at = datetime.now(timezone.utc)
        self.db.flush()
        return _to_data(row)

    def cancel_series_sessions(
        self, subscription_id: str, reason: Optional[str] = None
    ) -> List[SessionData]:
        """Cancel every scheduled session of a subscription."""
        rows = (
            self.db.query(TutoringSession)
            .filter(
                TutoringSession.subscription_id == subscription_id,
                TutoringSession.status == SessionStatus.SCHEDULED.value,
            )
            .with_for_update()
            .order_by(TutoringSession.scheduled_at)
            .all()
        )
        cancelled_at = datetime.now(timezone.utc)
        for row in rows:
            row.status = SessionStatus.CANCELLED.value
            row.cancellation_reason = reason
            row.cancelled_at = cancelled_at
        self.db.flush()
        return [_to_data(row) for row in rows]
