# tests/test_state_machine.py
"""
Test booking status transitions.
"""

import pytest

from conftest import make_booking

from app.audit.log import AuditLogger
from app.errors import InvalidTransition
from app.scheduling.models import BookingStatus
from app.scheduling.state_machine import TRANSITIONS, BookingStateMachine, get_valid_transitions


@pytest.fixture
def machine(stores):
    stores.bookings.add(make_booking())
    return BookingStateMachine(stores.bookings, AuditLogger(stores.audit))


class TestTransitionTable:
    """Tests for the transition table."""

    def test_terminal_states(self):
        """CANCELLED and COMPLETED allow no further transitions."""
        assert get_valid_transitions(BookingStatus.CANCELLED) == set()
        assert get_valid_transitions(BookingStatus.COMPLETED) == set()

    def test_every_status_has_an_entry(self):
        """The table covers every status."""
        assert set(TRANSITIONS) == set(BookingStatus)


class TestBookingStateMachine:
    """Tests for BookingStateMachine."""

    def test_valid_transition(self, machine, stores):
        """A valid transition updates the booking and is audited."""
        ok, error = machine.transition("booking-1", BookingStatus.AT_RISK, reason="Weather conflict")

        assert ok and error is None
        assert stores.bookings.get("booking-1").status == BookingStatus.AT_RISK
        event = stores.audit.events[-1]
        assert event.event_type == "status_changed"
        assert event.data == {"from_status": "CONFIRMED", "to_status": "AT_RISK", "reason": "Weather conflict"}
        assert event.actor == "SYSTEM"

    def test_invalid_transition_rejected(self, machine, stores):
        """CONFIRMED cannot jump to RESCHEDULED."""
        ok, error = machine.transition("booking-1", BookingStatus.RESCHEDULED)

        assert not ok
        assert "CONFIRMED -> RESCHEDULED" in error
        assert stores.bookings.get("booking-1").status == BookingStatus.CONFIRMED
        assert stores.audit.events == []

    def test_unknown_booking(self, machine):
        """Transitions on unknown bookings fail without raising."""
        ok, error = machine.transition("missing", BookingStatus.AT_RISK)

        assert not ok
        assert "not found" in error

    def test_require_transition_raises(self, machine):
        """require_transition turns a rejected transition into InvalidTransition."""
        with pytest.raises(InvalidTransition):
            machine.require_transition("booking-1", BookingStatus.RESCHEDULED)

    def test_actor_recorded(self, machine, stores):
        """An explicit actor is kept in the audit trail."""
        machine.transition("booking-1", BookingStatus.RESCHEDULING, actor="instructor-1")

        assert stores.audit.events[-1].actor == "instructor-1"
