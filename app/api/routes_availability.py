# app/api/routes_availability.py
"""
Availability API routes.
"""

from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..container import Container
from .deps import container_dependency

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/{user_id}")
def get_availability(
    user_id: str,
    start: date,
    end: date,
    container: Container = Depends(container_dependency),
) -> Dict[str, Any]:
    """Computed availability slots for a user over a date range."""
    try:
        slots = container.availability.get_availability(user_id, start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {
        "user_id": user_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "slots": [s.to_dict() for s in slots],
    }
