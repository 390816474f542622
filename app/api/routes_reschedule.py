# app/api/routes_reschedule.py
"""
Reschedule API routes.

generate: build and store options, open preference collection
options:  list stored options with the preference deadline
confirm:  apply the instructor's choice
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..container import Container
from ..errors import BookingNotFound, ReschedulerError
from ..logging import get_api_logger
from .deps import container_dependency, http_error

logger = get_api_logger()

router = APIRouter(prefix="/reschedule", tags=["reschedule"])


class ActorRequest(BaseModel):
    """Who triggered the action (recorded in the audit log)."""
    actor: Optional[str] = None


class OptionsResponse(BaseModel):
    booking_id: str
    status: str
    deadline: Optional[str] = None
    options: List[Dict[str, Any]]


@router.post("/{booking_id}/generate", response_model=OptionsResponse)
def generate_options(
    booking_id: str,
    request: Optional[ActorRequest] = None,
    container: Container = Depends(container_dependency),
) -> OptionsResponse:
    """Generate up to three reschedule options for a booking."""
    actor = request.actor if request else None
    try:
        options = container.workflow.start(booking_id, actor=actor)
    except ReschedulerError as e:
        logger.warning("generate_options_failed", booking_id=booking_id, error=str(e))
        raise http_error(e) from e

    deadline = container.preferences.deadline_for(booking_id)
    return OptionsResponse(
        booking_id=booking_id,
        status=container.stores.bookings.get(booking_id).status.value,
        deadline=deadline.isoformat() if deadline else None,
        options=[o.to_dict() for o in options],
    )


@router.get("/{booking_id}/options", response_model=OptionsResponse)
def list_options(
    booking_id: str,
    container: Container = Depends(container_dependency),
) -> OptionsResponse:
    """Stored options for a booking, best first."""
    booking = container.stores.bookings.get(booking_id)
    if booking is None:
        raise http_error(BookingNotFound(f"Booking not found: {booking_id}"))
    deadline = container.preferences.deadline_for(booking_id)
    return OptionsResponse(
        booking_id=booking_id,
        status=booking.status.value,
        deadline=deadline.isoformat() if deadline else None,
        options=[o.to_dict() for o in container.stores.options.list_for_booking(booking_id)],
    )


@router.post("/{booking_id}/confirm")
def confirm_reschedule(
    booking_id: str,
    request: Optional[ActorRequest] = None,
    container: Container = Depends(container_dependency),
) -> Dict[str, Any]:
    """Confirm the instructor's selected option."""
    actor = request.actor if request else None
    try:
        outcome = container.workflow.confirm(booking_id, actor=actor)
    except ReschedulerError as e:
        logger.warning("confirm_reschedule_failed", booking_id=booking_id, error=str(e))
        raise http_error(e) from e
    return outcome.to_dict()
