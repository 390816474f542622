# app/api/routes_preferences.py
"""
Preference API routes.

Each participant ranks up to three of a booking's options before the
deadline. Only the instructor's ranking decides the final slot.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..container import Container
from ..errors import BookingNotFound, ReschedulerError
from ..logging import get_api_logger
from ..scheduling.deadline import format_deadline
from .deps import container_dependency, http_error

logger = get_api_logger()

router = APIRouter(prefix="/preferences", tags=["preferences"])


class SubmitPreferenceRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    ranked_option_ids: List[str] = Field(default_factory=list)
    unavailable_option_ids: List[str] = Field(default_factory=list)


@router.get("/{booking_id}")
def get_preferences(
    booking_id: str,
    container: Container = Depends(container_dependency),
) -> Dict[str, Any]:
    """Both participants' rankings and the shared deadline."""
    if container.stores.bookings.get(booking_id) is None:
        raise http_error(BookingNotFound(f"Booking not found: {booking_id}"))
    preferences = container.preferences
    deadline = preferences.deadline_for(booking_id)
    return {
        "booking_id": booking_id,
        "deadline": deadline.isoformat() if deadline else None,
        "deadline_text": format_deadline(deadline, container.workflow.clock()) if deadline else None,
        "both_submitted": preferences.both_submitted(booking_id),
        "rankings": [r.to_dict() for r in preferences.get_preferences(booking_id)],
    }


@router.post("/{booking_id}")
def submit_preference(
    booking_id: str,
    request: SubmitPreferenceRequest,
    container: Container = Depends(container_dependency),
) -> Dict[str, Any]:
    """Submit (or overwrite) a participant's ranking."""
    try:
        ranking = container.preferences.submit_preference(
            booking_id,
            request.user_id,
            request.ranked_option_ids,
            request.unavailable_option_ids,
        )
    except ReschedulerError as e:
        logger.warning(
            "submit_preference_failed",
            booking_id=booking_id,
            user_id=request.user_id,
            error=str(e),
        )
        raise http_error(e) from e
    return ranking.to_dict()
