# app/scheduling/workflow.py
"""
Reschedule workflow.

start:   generate options, store them, open preference collection
confirm: resolve the instructor's choice, re-check availability and
         weather, then move the booking
process_expired_deadlines: confirm (or escalate) bookings whose
         preference deadline has passed

Status flow:
CONFIRMED/AT_RISK -> RESCHEDULING (options stored)
RESCHEDULING -> RESCHEDULED (confirmed)
RESCHEDULING -> AT_RISK (deadline passed and the choice is missing or cannot be applied)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..audit.log import AuditLogger
from ..availability.service import AvailabilityService
from ..errors import (
    BookingNotFound,
    InvalidTransition,
    NoCandidateSlot,
    PreferencesPending,
    ReschedulerError,
    SelectionUnavailable,
)
from ..logging import get_scheduling_logger
from ..notifications.dispatcher import NotificationDispatcher, NotificationEventType
from ..store.base import BookingStore, RescheduleOptionStore
from ..validation.validator import WeatherValidator
from .deadline import format_deadline, is_deadline_passed
from .engine import RescheduleEngine
from .models import Booking, BookingStatus, RescheduleOption
from .preferences import PreferenceService
from .state_machine import BookingStateMachine

logger = get_scheduling_logger("workflow")

RESCHEDULABLE_STATUSES = (
    BookingStatus.CONFIRMED,
    BookingStatus.AT_RISK,
    BookingStatus.RESCHEDULING,
)


class ConfirmStatus(Enum):
    CONFIRMED = "confirmed"
    AVAILABILITY_CONFLICT = "availability_conflict"
    REGENERATED = "regenerated"
    BLOCKED = "blocked"
    ESCALATED = "escalated"


@dataclass
class ConfirmOutcome:
    booking_id: str
    status: ConfirmStatus
    option_id: Optional[str] = None
    new_time: Optional[datetime] = None
    detail: str = ""
    options: List[RescheduleOption] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "status": self.status.value,
            "option_id": self.option_id,
            "new_time": self.new_time.isoformat() if self.new_time else None,
            "detail": self.detail,
            "options": [o.to_dict() for o in self.options],
        }


class RescheduleWorkflow:
    """
    Drives a booking from conflict to a confirmed new time.
    """

    def __init__(
        self,
        bookings: BookingStore,
        options: RescheduleOptionStore,
        engine: RescheduleEngine,
        preferences: PreferenceService,
        availability: AvailabilityService,
        validator: WeatherValidator,
        state_machine: BookingStateMachine,
        notifier: NotificationDispatcher,
        audit: AuditLogger,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.bookings = bookings
        self.options = options
        self.engine = engine
        self.preferences = preferences
        self.availability = availability
        self.validator = validator
        self.state_machine = state_machine
        self.notifier = notifier
        self.audit = audit
        self.clock = clock

    def _booking(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking not found: {booking_id}")
        return booking

    def start(self, booking_id: str, actor: Optional[str] = None) -> List[RescheduleOption]:
        """
        Generate and store fresh options and open preference collection.

        Superseded options and rankings are replaced. On NoCandidateSlot the
        booking keeps its status and the error propagates.
        """
        booking = self._booking(booking_id)
        if booking.status not in RESCHEDULABLE_STATUSES:
            raise InvalidTransition(
                f"Booking {booking_id} cannot be rescheduled from {booking.status.value}"
            )

        now = self.clock()
        try:
            options = self.engine.generate_options(booking, now=now)
        except NoCandidateSlot as e:
            self.audit.log_event(
                "no_candidate_slot", "booking", booking_id, {"error": str(e)}, actor=actor
            )
            raise

        self.options.replace_for_booking(booking_id, options)
        self.preferences.reset(booking_id)

        if booking.status != BookingStatus.RESCHEDULING:
            self.state_machine.require_transition(
                booking_id,
                BookingStatus.RESCHEDULING,
                reason="Reschedule options generated",
                actor=actor,
            )

        deadline = self.preferences.create_rankings(booking, notified_at=now)
        self.audit.log_options_generated(booking_id, [o.id for o in options])
        self.notifier.emit(
            NotificationEventType.OPTIONS_AVAILABLE,
            booking_id,
            booking.participant_ids,
            {
                "option_count": len(options),
                "options": [
                    {"id": o.id, "suggested_time": o.suggested_time.isoformat(), "confidence": o.confidence}
                    for o in options
                ],
                "deadline": deadline.isoformat(),
                "deadline_text": format_deadline(deadline, now),
            },
        )
        logger.info(
            "reschedule_started",
            booking_id=booking_id,
            option_count=len(options),
            deadline=deadline.isoformat(),
        )
        return options

    def confirm(
        self,
        booking_id: str,
        actor: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ConfirmOutcome:
        """
        Apply the instructor's choice.

        Raises:
            PreferencesPending: Rankings outstanding and deadline still open
            SelectionUnavailable: Instructor has no usable choice yet
            InvalidTransition: Booking is not RESCHEDULING
        """
        booking = self._booking(booking_id)
        if booking.status != BookingStatus.RESCHEDULING:
            raise InvalidTransition(
                f"Booking {booking_id} is {booking.status.value}, not RESCHEDULING"
            )

        log = logger.bind(booking_id=booking_id, actor=actor)
        now = now or self.clock()
        deadline = self.preferences.deadline_for(booking_id)
        deadline_passed = deadline is not None and is_deadline_passed(deadline, now)

        if not self.preferences.both_submitted(booking_id) and not deadline_passed:
            raise PreferencesPending(
                "Both student and instructor must submit their preferences before confirming"
            )

        option_id = self.preferences.resolve_final_selection(booking_id)
        option = self.options.get(option_id) if option_id else None
        if option is None or option.booking_id != booking_id:
            if deadline_passed:
                return self._escalate(booking, actor)
            raise SelectionUnavailable(f"Instructor has not selected a usable option for {booking_id}")

        unavailable = self.availability.first_unavailable(
            booking.participant_ids, option.suggested_time
        )
        if unavailable is not None:
            role = "Student" if unavailable == booking.student_id else "Instructor"
            detail = f"{role} is not available at this time"
            self.audit.log_event(
                "confirm_availability_conflict",
                "booking",
                booking_id,
                {"option_id": option.id, "user_id": unavailable},
                actor=actor,
            )
            log.warning("confirm_availability_conflict", user_id=unavailable)
            # Rankings are closed once the deadline passes; nobody can pick again
            if deadline_passed:
                return self._escalate(
                    booking,
                    actor,
                    reason_code="availability_conflict",
                    detail=f"Preference deadline passed; {role.lower()} is not available at this time",
                    option_id=option.id,
                )
            return ConfirmOutcome(
                booking_id=booking_id,
                status=ConfirmStatus.AVAILABILITY_CONFLICT,
                option_id=option.id,
                detail=detail,
            )

        verdict = self.validator.validate_route(
            booking.route, booking.certification_level, at=option.suggested_time
        )
        if not verdict.is_valid:
            self.audit.log_weather_check(booking_id, False, verdict.confidence, verdict.violations)
            log.warning(
                "confirm_weather_invalid",
                option_id=option.id,
                violation_count=len(verdict.violations),
            )
            try:
                options = self.start(booking_id, actor=actor)
            except NoCandidateSlot as e:
                if deadline_passed:
                    return self._escalate(
                        booking,
                        actor,
                        reason_code="no_candidate_slot",
                        detail=f"Preference deadline passed; no replacement slot: {e}",
                        option_id=option.id,
                    )
                return ConfirmOutcome(
                    booking_id=booking_id,
                    status=ConfirmStatus.BLOCKED,
                    option_id=option.id,
                    detail=str(e),
                )
            return ConfirmOutcome(
                booking_id=booking_id,
                status=ConfirmStatus.REGENERATED,
                option_id=option.id,
                detail="Weather no longer valid for the selected option; new options generated",
                options=options,
            )

        previous_time = booking.scheduled_time
        self.bookings.update_schedule(booking_id, option.suggested_time)
        self.state_machine.require_transition(
            booking_id,
            BookingStatus.RESCHEDULED,
            reason=f"Rescheduled to {option.suggested_time.isoformat()}",
            actor=actor,
        )
        self.audit.log_event(
            "reschedule_confirmed",
            "booking",
            booking_id,
            {
                "option_id": option.id,
                "previous_time": previous_time.isoformat(),
                "new_time": option.suggested_time.isoformat(),
            },
            actor=actor,
        )
        self.notifier.emit(
            NotificationEventType.RESCHEDULE_CONFIRMED,
            booking_id,
            booking.participant_ids,
            {
                "option_id": option.id,
                "previous_time": previous_time.isoformat(),
                "new_time": option.suggested_time.isoformat(),
            },
        )
        log.info(
            "reschedule_confirmed",
            option_id=option.id,
            new_time=option.suggested_time.isoformat(),
        )
        return ConfirmOutcome(
            booking_id=booking_id,
            status=ConfirmStatus.CONFIRMED,
            option_id=option.id,
            new_time=option.suggested_time,
        )

    def _escalate(
        self,
        booking: Booking,
        actor: Optional[str],
        reason_code: str = "no_instructor_selection",
        detail: str = "Preference deadline passed without an instructor selection",
        option_id: Optional[str] = None,
    ) -> ConfirmOutcome:
        self.state_machine.require_transition(
            booking.id,
            BookingStatus.AT_RISK,
            reason=detail,
            actor=actor,
        )
        self.audit.log_event(
            "escalated",
            "booking",
            booking.id,
            {"reason": reason_code, "option_id": option_id},
            actor=actor,
        )
        self.notifier.emit(
            NotificationEventType.ESCALATION,
            booking.id,
            booking.participant_ids,
            {"reason": detail},
        )
        logger.warning("reschedule_escalated", booking_id=booking.id, reason=reason_code)
        return ConfirmOutcome(
            booking_id=booking.id,
            status=ConfirmStatus.ESCALATED,
            option_id=option_id,
            detail=detail,
        )

    def process_expired_deadlines(self, now: Optional[datetime] = None) -> List[ConfirmOutcome]:
        """Confirm or escalate every RESCHEDULING booking whose deadline has passed."""
        now = now or self.clock()
        outcomes = []
        for booking in self.bookings.list_by_status(BookingStatus.RESCHEDULING):
            deadline = self.preferences.deadline_for(booking.id)
            if deadline is None or not is_deadline_passed(deadline, now):
                continue
            try:
                outcomes.append(self.confirm(booking.id, actor="SYSTEM", now=now))
            except ReschedulerError as e:
                logger.error("expired_deadline_processing_failed", booking_id=booking.id, error=str(e))
        return outcomes
