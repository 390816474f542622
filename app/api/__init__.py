"""API routes package."""

from .routes_health import router as health_router
from .routes_weather import router as weather_router
from .routes_monitor import router as monitor_router
from .routes_reschedule import router as reschedule_router
from .routes_preferences import router as preferences_router
from .routes_availability import router as availability_router

__all__ = [
    "health_router",
    "weather_router",
    "monitor_router",
    "reschedule_router",
    "preferences_router",
    "availability_router",
]
