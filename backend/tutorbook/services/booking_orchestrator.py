# backend/tutorbook/services/booking_orchestrator.py
"""
Booking Orchestrator for the tutor booking engine

Single entry point for booking sessions and series, rescheduling, cancelling
and closing sessions. Each operation composes the pure guards (modification policy,
slot resolution, series regeneration, trial eligibility) and performs at
most one write through the session store.

Expected failures come back as ``BookingOutcome`` rejections and leave no
partial state. Writes run under the tutor's lock and inside one database
transaction; a conflict detected by the store at write time is reported as
``CONCURRENT_BOOKING_CONFLICT``. Nothing is retried here.
"""

from contextlib import AbstractContextManager
from datetime import date, time, timedelta
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytz
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MS_PER_MINUTE
from ..core.enums import RecurrenceFrequency, RejectionCode
from ..core.exceptions import (
    BookingConflictException,
    InvalidStatusTransitionException,
    NotFoundException,
    TrialLimitReachedException,
)
from ..core.timezone_utils import get_canonical_timezone, local_to_epoch_ms, now_ms
from ..core.tutor_lock import tutor_lock
from ..models.session import SessionStatus
from ..models.subscription import Subscription
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.interfaces import (
    AvailabilityWindowStore,
    BookedSessionStore,
    TimeBlockStore,
    TrialUsageStore,
)
from ..schemas.availability import SlotPreviewResponse
from ..schemas.booking import SLOT_NO_LONGER_AVAILABLE, BookingOutcome, SeriesBookRequest
from ..schemas.session import SessionBookRequest, SessionData
from .base import BaseService
from .modification_policy import (
    SeriesModificationCheck,
    can_modify,
    check_series_modifiable,
    hours_until,
)
from .policy import BookingPolicy
from .series_rescheduler import reschedule_series, step_days_for, validate_new_series
from .slot_resolver import SlotCheck, SlotResolverService, is_slot_bookable
from .trial_eligibility import TrialEligibilityGuard

logger = logging.getLogger(__name__)

TutorLock = Callable[[str], AbstractContextManager]


class BookingOrchestrator(BaseService):
    """
    Facade over the booking engine.

    Stores, policy, clock and lock are injectable so the engine can run
    against fakes and a fixed clock in tests.
    """

    def __init__(
        self,
        db: Session,
        window_repository: Optional[AvailabilityWindowStore] = None,
        session_repository: Optional[BookedSessionStore] = None,
        trial_store: Optional[TrialUsageStore] = None,
        policy: Optional[BookingPolicy] = None,
        clock: Callable[[], int] = now_ms,
        lock: TutorLock = tutor_lock,
        tz: Optional[pytz.BaseTzInfo] = None,
        block_store: Optional[TimeBlockStore] = None,
    ):
        super().__init__(db)
        self.window_repository = (
            window_repository or RepositoryFactory.create_availability_window_repository(db)
        )
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.block_store = block_store or RepositoryFactory.create_time_block_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.policy = policy or BookingPolicy.from_settings()
        self.clock = clock
        self.lock = lock
        self.tz = tz or get_canonical_timezone()
        self.trial_guard = TrialEligibilityGuard(db, trial_store=trial_store, policy=self.policy)
        self.slot_service = SlotResolverService(
            db,
            window_repository=self.window_repository,
            session_repository=self.session_repository,
            policy=self.policy,
            clock=clock,
            block_store=self.block_store,
        )

    # Helpers

    def _reject(
        self,
        operation: str,
        code: RejectionCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> BookingOutcome:
        prometheus_metrics.record_booking_rejection(operation, code.value)
        self.logger.info(
            f"{operation} rejected: {code.value}",
            extra={"operation": operation, "rejection_code": code.value, "details": details},
        )
        return BookingOutcome.rejected(operation, code, message, details)

    def _concurrent_conflict(
        self, operation: str, exc: Optional[BookingConflictException] = None
    ) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.CONCURRENT_BOOKING_CONFLICT,
            SLOT_NO_LONGER_AVAILABLE,
            dict(exc.details) if exc else {"reason": "tutor_lock_unavailable"},
        )

    def _check_slot(
        self,
        tutor_id: str,
        start: int,
        duration: int,
        now: int,
        exclude_session_ids: Sequence[str] = (),
    ) -> SlotCheck:
        end = start + duration * MS_PER_MINUTE
        return is_slot_bookable(
            tutor_id,
            start,
            duration,
            self.window_repository.get_availability_windows(tutor_id),
            self.session_repository.get_booked_sessions(tutor_id, start, end),
            now,
            exclude_session_ids=exclude_session_ids,
            tz=self.tz,
            blocks=self.block_store.get_time_blocks(tutor_id, start, end),
        )

    def _slot_rejection(self, operation: str, start: int, check: SlotCheck) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.SLOT_UNAVAILABLE,
            SLOT_NO_LONGER_AVAILABLE,
            {"scheduled_at": start, **check.to_payload()},
        )

    def _notice_rejection(self, operation: str, session: SessionData, now: int) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.MODIFICATION_NOT_ALLOWED,
            f"Sessions cannot be changed less than {self.policy.min_notice_hours} hours "
            "before they start",
            {
                "session_id": session.id,
                "hours_until_start": round(hours_until(session.scheduled_at, now), 2),
                "min_notice_hours": self.policy.min_notice_hours,
            },
        )

    def _status_rejection(
        self, operation: str, session: SessionData, action: str
    ) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.INVALID_STATUS_TRANSITION,
            f"Cannot {action} a session that is {session.status.value}",
            {"session_id": session.id, "status": session.status.value},
        )

    def _not_found(self, operation: str, session_id: str) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.SESSION_NOT_FOUND,
            "Session not found",
            {"session_id": session_id},
        )

    def _series_notice_rejection(
        self, operation: str, subscription_id: str, notice: SeriesModificationCheck
    ) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.MODIFICATION_NOT_ALLOWED,
            f"Sessions cannot be changed less than {self.policy.min_notice_hours} hours "
            "before they start",
            {
                "subscription_id": subscription_id,
                **notice.to_payload(),
                "min_notice_hours": self.policy.min_notice_hours,
            },
        )

    def _no_scheduled_sessions(self, operation: str, subscription_id: str) -> BookingOutcome:
        return self._reject(
            operation,
            RejectionCode.NO_SCHEDULED_SESSIONS,
            "No scheduled sessions found for this subscription",
            {"subscription_id": subscription_id},
        )

    def _require_subscription(self, subscription_id: str) -> Subscription:
        subscription = self.subscription_repository.get_subscription(subscription_id)
        if subscription is None:
            raise NotFoundException(
                f"Subscription {subscription_id} not found",
                details={"subscription_id": subscription_id},
            )
        return subscription

    def _subscription_mismatch(
        self, operation: str, subscription: Subscription, tutor_id: str, parent_id: str
    ) -> Optional[BookingOutcome]:
        """Rejection when a booking names a different tutor or parent than its subscription."""
        if subscription.tutor_id == tutor_id and subscription.parent_id == parent_id:
            return None
        return self._reject(
            operation,
            RejectionCode.SUBSCRIPTION_MISMATCH,
            "Tutor and parent must match the subscription",
            {
                "subscription_id": subscription.id,
                "tutor_id": tutor_id,
                "parent_id": parent_id,
            },
        )

    def _series_range(
        self, anchor: date, occurrences: int, frequency: RecurrenceFrequency
    ) -> tuple[int, int]:
        last = anchor + timedelta(days=(occurrences - 1) * step_days_for(frequency) + 1)
        return (
            local_to_epoch_ms(anchor, time(0, 0), self.tz),
            local_to_epoch_ms(last, time(0, 0), self.tz),
        )

    # Operations

    @BaseService.measure_operation("book_session")
    def book_session(self, request: SessionBookRequest) -> BookingOutcome:
        """
        Book a single or trial session.

        Order of checks: the subscription (when given) must belong to the same
        tutor and parent, then trial eligibility (trial requests only), then
        slot validation against the live booked set, then the insert, then
        trial consumption. Insert and consumption share one transaction, and
        consumption re-checks the cap under the usage row lock.
        """
        operation = "book_session"
        self.log_operation(
            operation,
            tutor_id=request.tutor_id,
            parent_id=request.parent_id,
            scheduled_at=request.scheduled_at,
            is_trial=request.is_trial,
        )
        if request.subscription_id:
            subscription = self._require_subscription(request.subscription_id)
            mismatch = self._subscription_mismatch(
                operation, subscription, request.tutor_id, request.parent_id
            )
            if mismatch is not None:
                return mismatch

        with self.lock(request.tutor_id) as acquired:
            if not acquired:
                return self._concurrent_conflict(operation)
            try:
                with self.transaction():
                    if request.is_trial:
                        eligibility = self.trial_guard.check_eligibility(
                            request.parent_id, request.course_id
                        )
                        if not eligibility.eligible:
                            return self._reject(
                                operation,
                                RejectionCode.TRIAL_LIMIT_REACHED,
                                "Trial lesson limit reached",
                                {
                                    "parent_id": request.parent_id,
                                    "trials_used": eligibility.trials_used,
                                    "trial_cap": eligibility.trial_cap,
                                },
                            )

                    now = self.clock()
                    check = self._check_slot(
                        request.tutor_id, request.scheduled_at, request.duration, now
                    )
                    if not check.bookable:
                        return self._slot_rejection(operation, request.scheduled_at, check)

                    session = self.session_repository.insert_session(
                        tutor_id=request.tutor_id,
                        parent_id=request.parent_id,
                        student_name=request.student_name,
                        subscription_id=request.subscription_id,
                        course_id=request.course_id,
                        is_trial=request.is_trial,
                        scheduled_at=request.scheduled_at,
                        duration=request.duration,
                    )
                    if request.is_trial:
                        self.trial_guard.consume_trial(request.parent_id, session.id)
            except BookingConflictException as exc:
                return self._concurrent_conflict(operation, exc)
            except TrialLimitReachedException as exc:
                return self._reject(
                    operation,
                    RejectionCode.TRIAL_LIMIT_REACHED,
                    "Trial lesson limit reached",
                    dict(exc.details),
                )

        self.logger.info(
            "Session booked",
            extra={"session_id": session.id, "tutor_id": session.tutor_id},
        )
        return BookingOutcome.success(operation, session)

    @BaseService.measure_operation("book_series")
    def book_series(self, subscription_id: str, request: SeriesBookRequest) -> BookingOutcome:
        """
        Book every listed occurrence of a subscription, or none of them.

        Occurrences are validated together under the tutor's lock: each must
        pass the single-slot rules and may not overlap another occurrence of
        the same request. All inserts share one transaction.
        """
        operation = "book_series"
        self.log_operation(
            operation, subscription_id=subscription_id, occurrences=len(request.scheduled_at)
        )
        subscription = self._require_subscription(subscription_id)
        tutor_id = subscription.tutor_id
        starts = sorted(request.scheduled_at)
        range_start, range_end = starts[0], starts[-1] + request.duration * MS_PER_MINUTE

        with self.lock(tutor_id) as acquired:
            if not acquired:
                return self._concurrent_conflict(operation)
            try:
                with self.transaction():
                    failure = validate_new_series(
                        tutor_id,
                        starts,
                        request.duration,
                        self.window_repository.get_availability_windows(tutor_id),
                        self.session_repository.get_booked_sessions(
                            tutor_id, range_start, range_end
                        ),
                        self.clock(),
                        tz=self.tz,
                        blocks=self.block_store.get_time_blocks(tutor_id, range_start, range_end),
                    )
                    if failure is not None:
                        return self._reject(
                            operation,
                            RejectionCode.SERIES_CONFLICT,
                            f"Session {failure.index + 1} of the series cannot be booked",
                            {"subscription_id": subscription_id, **failure.to_payload()},
                        )

                    booked = [
                        self.session_repository.insert_session(
                            tutor_id=tutor_id,
                            parent_id=subscription.parent_id,
                            student_name=request.student_name,
                            subscription_id=subscription_id,
                            course_id=request.course_id or subscription.course_id,
                            is_trial=False,
                            scheduled_at=start,
                            duration=request.duration,
                        )
                        for start in starts
                    ]
            except BookingConflictException as exc:
                return self._concurrent_conflict(operation, exc)

        self.logger.info(
            "Series booked",
            extra={"subscription_id": subscription_id, "sessions_booked": len(booked)},
        )
        return BookingOutcome.success(operation, *booked)

    @BaseService.measure_operation("reschedule_session")
    def reschedule_session(self, session_id: str, new_scheduled_at: int) -> BookingOutcome:
        """
        Move one scheduled session to ``new_scheduled_at``, keeping its duration.

        The notice rule applies to the session's current start. The session
        itself is ignored when validating the new interval.
        """
        operation = "reschedule_session"
        self.log_operation(operation, session_id=session_id, new_scheduled_at=new_scheduled_at)

        existing = self.session_repository.get_session(session_id)
        if existing is None:
            return self._not_found(operation, session_id)

        with self.lock(existing.tutor_id) as acquired:
            if not acquired:
                return self._concurrent_conflict(operation)
            try:
                with self.transaction():
                    session = self.session_repository.get_session(session_id)
                    if session is None:
                        return self._not_found(operation, session_id)
                    if session.status is not SessionStatus.SCHEDULED:
                        return self._status_rejection(operation, session, "reschedule")

                    now = self.clock()
                    if not can_modify(session.scheduled_at, now, self.policy.min_notice_hours):
                        return self._notice_rejection(operation, session, now)

                    check = self._check_slot(
                        session.tutor_id,
                        new_scheduled_at,
                        session.duration,
                        now,
                        exclude_session_ids=(session.id,),
                    )
                    if not check.bookable:
                        return self._slot_rejection(operation, new_scheduled_at, check)

                    updated = self.session_repository.update_session_schedule(
                        session.id, new_scheduled_at
                    )
            except BookingConflictException as exc:
                return self._concurrent_conflict(operation, exc)

        return BookingOutcome.success(operation, updated)

    @BaseService.measure_operation("reschedule_series")
    def reschedule_series(
        self,
        subscription_id: str,
        new_anchor_date: date,
        frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY,
    ) -> BookingOutcome:
        """
        Move every scheduled session of a subscription onto a new recurrence.

        All sessions move or none do.
        """
        operation = "reschedule_series"
        self.log_operation(
            operation,
            subscription_id=subscription_id,
            new_anchor_date=new_anchor_date.isoformat(),
            frequency=RecurrenceFrequency(frequency).value,
        )
        subscription = self._require_subscription(subscription_id)
        tutor_id = subscription.tutor_id

        with self.lock(tutor_id) as acquired:
            if not acquired:
                return self._concurrent_conflict(operation)
            try:
                with self.transaction():
                    series = self.session_repository.get_series_sessions(subscription_id)
                    scheduled = [s for s in series if s.status is SessionStatus.SCHEDULED]
                    if not scheduled:
                        return self._no_scheduled_sessions(operation, subscription_id)

                    now = self.clock()
                    notice = check_series_modifiable(series, now, self.policy.min_notice_hours)
                    if not notice.allowed:
                        return self._series_notice_rejection(operation, subscription_id, notice)

                    range_start, range_end = self._series_range(
                        new_anchor_date, len(scheduled), frequency
                    )
                    result = reschedule_series(
                        subscription_id,
                        series,
                        new_anchor_date,
                        frequency,
                        self.window_repository.get_availability_windows(tutor_id),
                        self.session_repository.get_booked_sessions(
                            tutor_id, range_start, range_end
                        ),
                        now,
                        tz=self.tz,
                        blocks=self.block_store.get_time_blocks(tutor_id, range_start, range_end),
                    )
                    if result.failure is not None:
                        return self._reject(
                            operation,
                            RejectionCode.SERIES_CONFLICT,
                            f"Session {result.failure.index + 1} of the series cannot be "
                            "placed at its new time",
                            {"subscription_id": subscription_id, **result.failure.to_payload()},
                        )

                    updated = self.session_repository.update_series_schedule(
                        subscription_id, result.pairs()
                    )
            except BookingConflictException as exc:
                return self._concurrent_conflict(operation, exc)

        self.logger.info(
            "Series rescheduled",
            extra={"subscription_id": subscription_id, "sessions_moved": len(updated)},
        )
        return BookingOutcome.success(operation, *updated)

    @BaseService.measure_operation("cancel_session")
    def cancel_session(self, session_id: str, reason: Optional[str] = None) -> BookingOutcome:
        """Cancel one scheduled session, subject to the notice rule."""
        operation = "cancel_session"
        self.log_operation(operation, session_id=session_id)

        with self.transaction():
            session = self.session_repository.get_session(session_id)
            if session is None:
                return self._not_found(operation, session_id)
            if session.status is not SessionStatus.SCHEDULED:
                return self._status_rejection(operation, session, "cancel")

            now = self.clock()
            if not can_modify(session.scheduled_at, now, self.policy.min_notice_hours):
                return self._notice_rejection(operation, session, now)

            try:
                cancelled = self.session_repository.set_session_status(
                    session.id, SessionStatus.CANCELLED, reason
                )
            except InvalidStatusTransitionException:
                return self._status_rejection(operation, session, "cancel")

        return BookingOutcome.success(operation, cancelled)

    @BaseService.measure_operation("cancel_series")
    def cancel_series(self, subscription_id: str, reason: Optional[str] = None) -> BookingOutcome:
        """Cancel every scheduled session of a subscription, or none of them."""
        operation = "cancel_series"
        self.log_operation(operation, subscription_id=subscription_id)
        self._require_subscription(subscription_id)

        with self.transaction():
            series = self.session_repository.get_series_sessions(subscription_id)
            if not any(s.status is SessionStatus.SCHEDULED for s in series):
                return self._no_scheduled_sessions(operation, subscription_id)

            now = self.clock()
            notice = check_series_modifiable(series, now, self.policy.min_notice_hours)
            if not notice.allowed:
                return self._series_notice_rejection(operation, subscription_id, notice)

            cancelled = self.session_repository.cancel_series_sessions(subscription_id, reason)

        return BookingOutcome.success(operation, *cancelled)

    def _close_session(
        self, operation: str, session_id: str, status: SessionStatus, action: str
    ) -> BookingOutcome:
        self.log_operation(operation, session_id=session_id)
        with self.transaction():
            session = self.session_repository.get_session(session_id)
            if session is None:
                return self._not_found(operation, session_id)
            if not session.status.can_transition_to(status):
                return self._status_rejection(operation, session, action)
            closed = self.session_repository.set_session_status(session.id, status)
        return BookingOutcome.success(operation, closed)

    @BaseService.measure_operation("mark_completed")
    def mark_completed(self, session_id: str) -> BookingOutcome:
        """Tutor closes a scheduled session as held."""
        return self._close_session(
            "mark_completed", session_id, SessionStatus.COMPLETED, "complete"
        )

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, session_id: str) -> BookingOutcome:
        """Tutor closes a scheduled session the student missed."""
        return self._close_session(
            "mark_no_show", session_id, SessionStatus.NO_SHOW, "mark as no-show"
        )

    def preview_slots(
        self,
        tutor_id: str,
        slot_duration: Optional[int] = None,
        horizon_days: Optional[int] = None,
        exclude_session_id: Optional[str] = None,
    ) -> SlotPreviewResponse:
        """Availability preview; see ``SlotResolverService.preview_slots``."""
        duration = slot_duration or settings.default_session_duration_minutes
        return self.slot_service.preview_slots(
            tutor_id, duration, horizon_days=horizon_days, exclude_session_id=exclude_session_id
        )

    def get_series(self, subscription_id: str) -> List[SessionData]:
        self._require_subscription(subscription_id)
        return self.session_repository.get_series_sessions(subscription_id)
