# app/scheduling/state_machine.py
"""
Booking status state machine.

States:
CONFIRMED -> AT_RISK | RESCHEDULING | CANCELLED | COMPLETED
AT_RISK -> CONFIRMED (weather cleared) | RESCHEDULING | CANCELLED
RESCHEDULING -> RESCHEDULED | AT_RISK | CANCELLED
RESCHEDULED -> COMPLETED | CANCELLED
CANCELLED, COMPLETED are terminal
"""

from typing import Dict, Optional, Set, Tuple

from ..audit.log import AuditLogger
from ..errors import InvalidTransition
from ..logging import get_scheduling_logger
from ..store.base import BookingStore
from .models import BookingStatus

logger = get_scheduling_logger("state_machine")


# Valid status transitions
TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
    BookingStatus.CONFIRMED: {
        BookingStatus.AT_RISK,
        BookingStatus.RESCHEDULING,
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
    },
    BookingStatus.AT_RISK: {
        BookingStatus.CONFIRMED,
        BookingStatus.RESCHEDULING,
        BookingStatus.CANCELLED,
    },
    BookingStatus.RESCHEDULING: {
        BookingStatus.RESCHEDULED,
        BookingStatus.AT_RISK,
        BookingStatus.CANCELLED,
    },
    BookingStatus.RESCHEDULED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),  # Terminal
    BookingStatus.COMPLETED: set(),  # Terminal
}


def get_valid_transitions(current: BookingStatus) -> Set[BookingStatus]:
    """Get valid transitions from current status."""
    return TRANSITIONS.get(current, set())


class BookingStateMachine:
    """
    Enforces valid booking status transitions and audits each one.
    """

    def __init__(self, bookings: BookingStore, audit: AuditLogger):
        self.bookings = bookings
        self.audit = audit

    def transition(
        self,
        booking_id: str,
        to_status: BookingStatus,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Tuple[bool, Optional[str]]:
        """
        Move a booking to a new status.

        Args:
            booking_id: Booking ID
            to_status: Target status
            reason: Optional reason for the transition
            actor: Who triggered it (defaults to SYSTEM in the audit trail)

        Returns:
            (success, error_message)
        """
        booking = self.bookings.get(booking_id)
        if booking is None:
            return False, f"Booking not found: {booking_id}"

        current = booking.status
        valid = get_valid_transitions(current)
        if to_status not in valid:
            return False, (
                f"Invalid transition: {current.value} -> {to_status.value}. "
                f"Valid transitions: {sorted(s.value for s in valid)}"
            )

        self.bookings.update_status(booking_id, to_status)
        self.audit.log_status_change(
            booking_id,
            current.value,
            to_status.value,
            reason=reason,
            actor=actor or "SYSTEM",
        )
        logger.info(
            "booking_status_changed",
            booking_id=booking_id,
            from_status=current.value,
            to_status=to_status.value,
            reason=reason,
        )
        return True, None

    def require_transition(
        self,
        booking_id: str,
        to_status: BookingStatus,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> None:
        """Same as transition() but raises InvalidTransition on failure."""
        ok, error = self.transition(booking_id, to_status, reason=reason, actor=actor)
        if not ok:
            raise InvalidTransition(error)
