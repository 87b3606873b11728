# backend/tutorbook/main.py
"""
FastAPI application for the tutor booking engine.

Run with:
    uvicorn tutorbook.main:app --reload
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import settings
from .core.constants import BRAND_NAME
from .core.exceptions import DomainException
from .database import init_db
from .routes import (
    availability as availability_v1,
    parents as parents_v1,
    prometheus as prometheus_v1,
    sessions as sessions_v1,
    subscriptions as subscriptions_v1,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup."""
    logger.info(f"Starting {BRAND_NAME} API {__version__} ({settings.environment})")
    init_db()
    yield
    logger.info(f"{BRAND_NAME} API shutting down")


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render domain exceptions that escape a route with the standard error body."""
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


def create_app() -> FastAPI:
    application = FastAPI(
        title=f"{BRAND_NAME} API",
        description="Tutor availability, booking and rescheduling",
        version=__version__,
        lifespan=app_lifespan,
    )
    application.add_exception_handler(DomainException, domain_exception_handler)

    api_v1 = APIRouter(prefix=settings.api_prefix)
    api_v1.include_router(availability_v1.router)
    api_v1.include_router(sessions_v1.router, prefix="/sessions")
    api_v1.include_router(subscriptions_v1.router, prefix="/subscriptions")
    api_v1.include_router(parents_v1.router, prefix="/parents")
    api_v1.include_router(prometheus_v1.router)
    application.include_router(api_v1)

    @application.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return application


app = create_app()
