# app/api/routes_health.py
"""
Health check routes.
"""

from fastapi import APIRouter, Depends, HTTPException

from ..container import Container
from ..db.engine import check_connection
from .deps import container_dependency

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    """Basic health check."""
    return {"status": "ok", "service": "weather-rescheduler"}


@router.get("/db")
def db_health_check(container: Container = Depends(container_dependency)):
    """Database health check (only meaningful for the sql backend)."""
    if container.settings.store_backend != "sql":
        return {"status": "ok", "database": "not_used", "store_backend": container.settings.store_backend}
    if check_connection():
        return {"status": "ok", "database": "connected"}
    raise HTTPException(status_code=503, detail="Database connection failed")


@router.get("/weather")
def weather_health_check(container: Container = Depends(container_dependency)):
    """Circuit breaker states and cache statistics."""
    breakers = container.gateway.breaker_states()
    degraded = any(b["state"] != "CLOSED" for b in breakers)
    return {
        "status": "degraded" if degraded else "ok",
        "breakers": breakers,
        "cache": container.cache.stats(),
        "sweeper_running": container.sweeper.running,
    }
