# backend/tutorbook/routes/subscriptions.py
"""
Subscription (series) routes - API v1

Endpoints:
    GET /{subscription_id}/sessions - The series' live sessions
    POST /{subscription_id}/sessions - Book several sessions at once
    POST /{subscription_id}/reschedule - Move the whole series
    POST /{subscription_id}/cancel - Cancel every scheduled session
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from ..api.dependencies import get_booking_orchestrator
from ..core.exceptions import DomainException
from ..schemas.booking import (
    BookingOutcome,
    SeriesBookRequest,
    SeriesCancelRequest,
    SeriesRescheduleRequest,
    SeriesResponse,
)
from ..schemas.session import SessionResponse
from ..services.booking_orchestrator import BookingOrchestrator
from .errors import handle_domain_exception, raise_for_rejection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions-v1"])


def _series_response(subscription_id: str, outcome: BookingOutcome) -> SeriesResponse:
    raise_for_rejection(outcome)
    return SeriesResponse(
        subscription_id=subscription_id,
        sessions=[SessionResponse.from_data(s) for s in outcome.sessions],
    )


@router.get("/{subscription_id}/sessions", response_model=SeriesResponse)
async def get_series(
    subscription_id: str,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SeriesResponse:
    try:
        sessions = await asyncio.to_thread(orchestrator.get_series, subscription_id)
    except DomainException as e:
        handle_domain_exception(e)
    return SeriesResponse(
        subscription_id=subscription_id,
        sessions=[SessionResponse.from_data(s) for s in sessions],
    )


@router.post(
    "/{subscription_id}/sessions",
    response_model=SeriesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_series(
    subscription_id: str,
    payload: SeriesBookRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SeriesResponse:
    try:
        outcome = await asyncio.to_thread(orchestrator.book_series, subscription_id, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return _series_response(subscription_id, outcome)


@router.post("/{subscription_id}/reschedule", response_model=SeriesResponse)
async def reschedule_series(
    subscription_id: str,
    payload: SeriesRescheduleRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SeriesResponse:
    try:
        outcome = await asyncio.to_thread(
            orchestrator.reschedule_series,
            subscription_id,
            payload.new_anchor_date,
            payload.frequency,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return _series_response(subscription_id, outcome)


@router.post("/{subscription_id}/cancel", response_model=SeriesResponse)
async def cancel_series(
    subscription_id: str,
    payload: Optional[SeriesCancelRequest] = None,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SeriesResponse:
    try:
        outcome = await asyncio.to_thread(
            orchestrator.cancel_series, subscription_id, payload.reason if payload else None
        )
    except DomainException as e:
        handle_domain_exception(e)
    return _series_response(subscription_id, outcome)
