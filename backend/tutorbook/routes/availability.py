# backend/tutorbook/routes/availability.py
"""
Availability routes - API v1

Tutor-managed recurring windows, time blocks and the public slot preview.

Endpoints:
    GET /tutors/{tutor_id}/availability/windows - List a tutor's windows
    POST /tutors/{tutor_id}/availability/windows - Create a window
    PATCH /availability/windows/{window_id} - Update a window
    DELETE /availability/windows/{window_id} - Delete a window
    GET /tutors/{tutor_id}/availability/blocks - List a tutor's time blocks
    POST /tutors/{tutor_id}/availability/blocks - Block a period
    PATCH /availability/blocks/{block_id} - Update a block
    DELETE /availability/blocks/{block_id} - Remove a block
    GET /tutors/{tutor_id}/slots - Bookable slots over the next days
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..api.dependencies import get_availability_service, get_booking_orchestrator
from ..core.constants import MAX_SESSION_DURATION, MIN_SESSION_DURATION
from ..core.exceptions import DomainException
from ..schemas.availability import (
    AvailabilityWindowCreate,
    AvailabilityWindowResponse,
    AvailabilityWindowUpdate,
    SlotPreviewResponse,
    TimeBlockCreate,
    TimeBlockResponse,
    TimeBlockUpdate,
)
from ..services.availability_service import AvailabilityService
from ..services.booking_orchestrator import BookingOrchestrator
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get(
    "/tutors/{tutor_id}/availability/windows",
    response_model=List[AvailabilityWindowResponse],
)
async def list_windows(
    tutor_id: str,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityWindowResponse]:
    return await asyncio.to_thread(availability_service.list_windows, tutor_id)


@router.post(
    "/tutors/{tutor_id}/availability/windows",
    response_model=AvailabilityWindowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_window(
    tutor_id: str,
    payload: AvailabilityWindowCreate,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityWindowResponse:
    try:
        return await asyncio.to_thread(availability_service.create_window, tutor_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/availability/windows/{window_id}", response_model=AvailabilityWindowResponse)
async def update_window(
    window_id: str,
    payload: AvailabilityWindowUpdate,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityWindowResponse:
    try:
        return await asyncio.to_thread(availability_service.update_window, window_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/availability/windows/{window_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_window(
    window_id: str,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        await asyncio.to_thread(availability_service.delete_window, window_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/tutors/{tutor_id}/availability/blocks",
    response_model=List[TimeBlockResponse],
)
async def list_blocks(
    tutor_id: str,
    start: Optional[int] = Query(None, ge=0, description="Only blocks ending after this instant"),
    end: Optional[int] = Query(None, ge=0, description="Only blocks starting before this instant"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[TimeBlockResponse]:
    return await asyncio.to_thread(availability_service.list_blocks, tutor_id, start, end)


@router.post(
    "/tutors/{tutor_id}/availability/blocks",
    response_model=TimeBlockResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_block(
    tutor_id: str,
    payload: TimeBlockCreate,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> TimeBlockResponse:
    try:
        return await asyncio.to_thread(availability_service.create_block, tutor_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/availability/blocks/{block_id}", response_model=TimeBlockResponse)
async def update_block(
    block_id: str,
    payload: TimeBlockUpdate,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> TimeBlockResponse:
    try:
        return await asyncio.to_thread(availability_service.update_block, block_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/availability/blocks/{block_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_block(
    block_id: str,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        await asyncio.to_thread(availability_service.delete_block, block_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/tutors/{tutor_id}/slots", response_model=SlotPreviewResponse)
async def preview_slots(
    tutor_id: str,
    duration: Optional[int] = Query(None, ge=MIN_SESSION_DURATION, le=MAX_SESSION_DURATION),
    days: Optional[int] = Query(None, ge=1, le=366),
    exclude_session_id: Optional[str] = Query(None, max_length=26),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> SlotPreviewResponse:
    """Bookable slot starts for a tutor; an empty list means no availability."""
    return await asyncio.to_thread(
        orchestrator.preview_slots,
        tutor_id,
        duration,
        horizon_days=days,
        exclude_session_id=exclude_session_id,
    )
