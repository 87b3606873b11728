# backend/tutorbook/routes/sessions.py
"""
Session routes - API v1

All business logic delegated to BookingOrchestrator. Rejections come back
as 404/409/422 with ``{message, code, details}``.

Endpoints:
    POST / - Book a single or trial session
    GET /{session_id} - Session details
    POST /{session_id}/reschedule - Move a session
    POST /{session_id}/cancel - Cancel a session
    POST /{session_id}/complete - Tutor marks the session held
    POST /{session_id}/no-show - Tutor marks the student absent
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from ..api.dependencies import get_booking_orchestrator
from ..core.enums import RejectionCode
from ..core.exceptions import DomainException, NotFoundException
from ..schemas.booking import BookingOutcome
from ..schemas.session import (
    SessionBookRequest,
    SessionCancelRequest,
    SessionRescheduleRequest,
    SessionResponse,
)
from ..services.booking_orchestrator import BookingOrchestrator
from .errors import handle_domain_exception, raise_for_rejection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions-v1"])


def _session_response(outcome: BookingOutcome) -> SessionResponse:
    return SessionResponse.from_data(raise_for_rejection(outcome).sessions[0])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def book_session(
    payload: SessionBookRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SessionResponse:
    try:
        outcome = await asyncio.to_thread(orchestrator.book_session, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return _session_response(outcome)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SessionResponse:
    session = await asyncio.to_thread(orchestrator.session_repository.get_session, session_id)
    if session is None:
        handle_domain_exception(
            NotFoundException("Session not found", code=RejectionCode.SESSION_NOT_FOUND.value)
        )
    return SessionResponse.from_data(session)


@router.post("/{session_id}/reschedule", response_model=SessionResponse)
async def reschedule_session(
    session_id: str,
    payload: SessionRescheduleRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SessionResponse:
    outcome = await asyncio.to_thread(
        orchestrator.reschedule_session, session_id, payload.new_scheduled_at
    )
    return _session_response(outcome)


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(
    session_id: str,
    payload: Optional[SessionCancelRequest] = None,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SessionResponse:
    reason = payload.reason if payload else None
    outcome = await asyncio.to_thread(orchestrator.cancel_session, session_id, reason)
    return _session_response(outcome)


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_session(
    session_id: str,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SessionResponse:
    outcome = await asyncio.to_thread(orchestrator.mark_completed, session_id)
    return _session_response(outcome)


@router.post("/{session_id}/no-show", response_model=SessionResponse)
async def mark_no_show(
    session_id: str,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SessionResponse:
    outcome = await asyncio.to_thread(orchestrator.mark_no_show, session_id)
    return _session_response(outcome)
