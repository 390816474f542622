# app/main.py
"""
Weather-Aware Flight Training Rescheduler - Main Application

Watches upcoming training flights, flags bookings whose route weather is
below the student's certification minimums, and drives participants to a
confirmed replacement slot.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .api import (
    availability_router,
    health_router,
    monitor_router,
    preferences_router,
    reschedule_router,
    weather_router,
)
from .container import get_container
from .db.engine import check_connection
from .logging import configure_logging, get_logger
from .settings import settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Runs startup checks, starts the cache sweeper, and stops it on shutdown.
    """
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    logger.info("app_starting", store_backend=settings.store_backend)

    container = get_container()
    if container.settings.store_backend == "sql":
        if check_connection():
            logger.info("database_connected")
        else:
            logger.warning("database_connection_failed")

    container.sweeper.start()

    yield

    logger.info("app_stopping")
    container.close()


# Create FastAPI app
app = FastAPI(
    title="Weather-Aware Flight Training Rescheduler",
    description="""
    Weather monitoring and rescheduling for flight training bookings.

    Key features:
    - Dual weather providers with circuit breakers, retries and cross-validation
    - Route corridor validation against certification minimums
    - Conflict detection with severity by time to departure
    - Ranked reschedule options filtered by weather and availability
    - Preference collection with a deadline; the instructor's choice decides
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# In production, set ALLOWED_ORIGINS to specific domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add basic security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Server"] = "weather-rescheduler"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# Include API routers
app.include_router(health_router)
app.include_router(weather_router)
app.include_router(monitor_router)
app.include_router(reschedule_router)
app.include_router(preferences_router)
app.include_router(availability_router)


def run():
    """Run the server (entry point for CLI)."""
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run()
