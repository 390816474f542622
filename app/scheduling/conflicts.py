# app/scheduling/conflicts.py
"""
Weather conflict detection for upcoming bookings.

Severity by time to departure when weather is invalid:
- <= 2 h  : critical
- <= 12 h : warning
- otherwise: none (still a conflict; the booking goes AT_RISK)

The detector only moves bookings between CONFIRMED and AT_RISK. Starting a
reschedule is the workflow's job.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from ..logging import get_scheduling_logger
from ..store.base import BookingStore
from ..validation.validator import WeatherValidator
from ..weather.models import ValidationVerdict
from .models import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    ConflictResult,
    ConflictType,
    Severity,
)
from .state_machine import BookingStateMachine

logger = get_scheduling_logger("conflicts")

DEFAULT_LOOKAHEAD_HOURS = 48
CRITICAL_HOURS = 2
WARNING_HOURS = 12


def classify_severity(hours_until_departure: float) -> Severity:
    if hours_until_departure <= CRITICAL_HOURS:
        return Severity.CRITICAL
    if hours_until_departure <= WARNING_HOURS:
        return Severity.WARNING
    return Severity.NONE


def build_recommendations(verdict: ValidationVerdict, hours_until_departure: float) -> List[str]:
    if hours_until_departure <= 2:
        recommendations = [
            "URGENT: Flight departure is within 2 hours",
            "Contact student and instructor immediately",
            "Consider canceling or rescheduling",
        ]
    elif hours_until_departure <= 6:
        recommendations = [
            "Flight departure is within 6 hours",
            "Monitor weather closely",
            "Prepare rescheduling options",
        ]
    elif hours_until_departure <= 12:
        recommendations = [
            "Flight departure is within 12 hours",
            "Continue monitoring weather",
            "Alert student and instructor",
        ]
    else:
        recommendations = [
            "Flight departure is more than 12 hours away",
            "Mark booking as AT_RISK",
            "Monitor for improvement",
        ]

    if verdict.violations:
        recommendations.append("Weather violations:")
        recommendations.extend(f"- {v}" for v in verdict.violations)
    return recommendations


class ConflictDetector:
    """
    Scans upcoming bookings and flags weather conflicts.

    Usage:
        detector = ConflictDetector(bookings, validator, state_machine)
        results = detector.scan_upcoming(lookahead_hours=48)
    """

    def __init__(
        self,
        bookings: BookingStore,
        validator: WeatherValidator,
        state_machine: BookingStateMachine,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.bookings = bookings
        self.validator = validator
        self.state_machine = state_machine
        self.clock = clock

    def scan_upcoming(
        self,
        lookahead_hours: int = DEFAULT_LOOKAHEAD_HOURS,
        now: Optional[datetime] = None,
    ) -> List[ConflictResult]:
        """
        Check every active booking departing within the lookahead window.

        Bookings are processed one at a time, earliest first. A booking
        that raises is reported with `error` set and the scan continues.
        """
        now = now or self.clock()
        upcoming = self.bookings.list_in_window(
            ACTIVE_STATUSES, now, now + timedelta(hours=lookahead_hours)
        )
        logger.info("conflict_scan_started", booking_count=len(upcoming), lookahead_hours=lookahead_hours)

        results = []
        for booking in upcoming:
            try:
                results.append(self.check_booking(booking, now=now))
            except Exception as e:
                logger.error("conflict_check_failed", booking_id=booking.id, error=str(e), exc_info=True)
                results.append(ConflictResult(
                    booking_id=booking.id,
                    has_conflict=False,
                    previous_status=booking.status,
                    new_status=booking.status,
                    error=str(e),
                ))

        logger.info(
            "conflict_scan_completed",
            checked=len(results),
            conflicts=sum(1 for r in results if r.has_conflict),
            errors=sum(1 for r in results if r.error),
        )
        return results

    def check_booking(self, booking: Booking, now: Optional[datetime] = None) -> ConflictResult:
        now = now or self.clock()
        hours = (booking.scheduled_time - now).total_seconds() / 3600
        verdict = self.validator.validate_route(
            booking.route, booking.certification_level, at=booking.scheduled_time
        )
        previous = booking.status

        if verdict.is_valid:
            new_status = previous
            if previous == BookingStatus.AT_RISK:
                self.state_machine.require_transition(
                    booking.id, BookingStatus.CONFIRMED, reason="Weather cleared"
                )
                new_status = BookingStatus.CONFIRMED
            return ConflictResult(
                booking_id=booking.id,
                has_conflict=False,
                verdict=verdict,
                previous_status=previous,
                new_status=new_status,
                hours_until_departure=hours,
            )

        severity = classify_severity(hours)
        should_notify = previous == BookingStatus.CONFIRMED or severity == Severity.CRITICAL

        new_status = previous
        if previous == BookingStatus.CONFIRMED:
            self.state_machine.require_transition(
                booking.id,
                BookingStatus.AT_RISK,
                reason=f"Weather conflict ({severity.value})",
            )
            new_status = BookingStatus.AT_RISK

        logger.warning(
            "conflict_detected",
            booking_id=booking.id,
            severity=severity.value,
            hours_until_departure=round(hours, 2),
            violation_count=len(verdict.violations),
        )
        return ConflictResult(
            booking_id=booking.id,
            has_conflict=True,
            conflict_type=ConflictType.WEATHER,
            severity=severity,
            should_notify=should_notify,
            verdict=verdict,
            previous_status=previous,
            new_status=new_status,
            hours_until_departure=hours,
            recommendations=build_recommendations(verdict, hours),
        )

    def conflict_statistics(
        self,
        now: Optional[datetime] = None,
        lookahead_hours: int = DEFAULT_LOOKAHEAD_HOURS,
    ) -> Dict[str, int]:
        """Booking counts per status for the lookahead window."""
        now = now or self.clock()
        window = self.bookings.list_in_window(
            list(BookingStatus), now, now + timedelta(hours=lookahead_hours)
        )
        counts = {status.value.lower(): 0 for status in BookingStatus}
        for booking in window:
            counts[booking.status.value.lower()] += 1
        counts["total"] = len(window)
        return counts
