# backend/tutorbook/routes/errors.py
"""Conversion of domain exceptions and booking rejections to HTTP errors."""

from typing import NoReturn

from fastapi import HTTPException, status

from ..core.exceptions import DomainException
from ..schemas.booking import BookingOutcome


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def raise_for_rejection(outcome: BookingOutcome) -> BookingOutcome:
    """Return a successful outcome unchanged; raise the HTTP error of a rejected one."""
    if outcome.rejection is not None:
        handle_domain_exception(outcome.rejection.to_exception())
    return outcome
