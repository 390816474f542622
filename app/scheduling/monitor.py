# app/scheduling/monitor.py
"""
Weather monitor - one scan cycle over upcoming bookings.

Triggered externally: POST /monitor/run, or on a schedule via

    python -m app.scheduling.monitor

Per cycle:
1. Scan bookings in the lookahead window (ConflictDetector)
2. Audit each weather check, notify participants, start rescheduling for
   critical conflicts
3. Confirm or escalate bookings whose preference deadline has passed

A booking that fails is counted and the cycle continues. Only a cycle in
which every booking failed raises PartialCycleFailure.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..audit.log import AuditLogger
from ..errors import NoCandidateSlot, PartialCycleFailure
from ..logging import get_scheduling_logger
from ..notifications.dispatcher import NotificationDispatcher, NotificationEventType
from ..store.base import BookingStore
from .conflicts import DEFAULT_LOOKAHEAD_HOURS, ConflictDetector
from .models import BookingStatus, ConflictResult, Severity
from .workflow import RescheduleWorkflow

logger = get_scheduling_logger("monitor")


@dataclass
class CycleReport:
    started_at: datetime
    processed: int = 0
    conflicts: int = 0
    notifications: int = 0
    reschedules_started: int = 0
    deadlines_processed: int = 0
    errors: int = 0
    failed_bookings: int = 0
    results: List[ConflictResult] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    @property
    def degraded(self) -> bool:
        # Some errors, but not every booking failed
        return self.errors > 0 and (self.processed == 0 or self.failed_bookings < self.processed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "processed": self.processed,
            "conflicts": self.conflicts,
            "notifications": self.notifications,
            "reschedules_started": self.reschedules_started,
            "deadlines_processed": self.deadlines_processed,
            "errors": self.errors,
            "failed_bookings": self.failed_bookings,
            "degraded": self.degraded,
            "results": [r.to_dict() for r in self.results],
        }


class WeatherMonitor:

    def __init__(
        self,
        detector: ConflictDetector,
        bookings: BookingStore,
        workflow: RescheduleWorkflow,
        notifier: NotificationDispatcher,
        audit: AuditLogger,
        lookahead_hours: int = DEFAULT_LOOKAHEAD_HOURS,
        auto_reschedule_critical: bool = True,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.detector = detector
        self.bookings = bookings
        self.workflow = workflow
        self.notifier = notifier
        self.audit = audit
        self.lookahead_hours = lookahead_hours
        self.auto_reschedule_critical = auto_reschedule_critical
        self.clock = clock

    def run_cycle(self, now: Optional[datetime] = None) -> CycleReport:
        """
        Run one monitoring cycle.

        Raises:
            PartialCycleFailure: Bookings were processed and every one failed
        """
        now = now or self.clock()
        report = CycleReport(started_at=now)
        logger.info("monitor_cycle_started", lookahead_hours=self.lookahead_hours)

        results = self.detector.scan_upcoming(self.lookahead_hours, now=now)
        report.processed = len(results)
        report.results = results

        for result in results:
            if result.error:
                report.errors += 1
                report.failed_bookings += 1
                continue
            try:
                self._handle_result(result, report)
            except Exception as e:
                report.errors += 1
                report.failed_bookings += 1
                result.error = str(e)
                logger.error("monitor_booking_failed", booking_id=result.booking_id, error=str(e), exc_info=True)

        try:
            report.deadlines_processed = len(self.workflow.process_expired_deadlines(now=now))
        except Exception as e:
            report.errors += 1
            logger.error("deadline_processing_failed", error=str(e), exc_info=True)

        report.completed_at = self.clock()
        logger.info(
            "monitor_cycle_completed",
            processed=report.processed,
            conflicts=report.conflicts,
            notifications=report.notifications,
            reschedules_started=report.reschedules_started,
            deadlines_processed=report.deadlines_processed,
            errors=report.errors,
            degraded=report.degraded,
        )

        if report.processed > 0 and report.failed_bookings >= report.processed:
            raise PartialCycleFailure(
                f"All {report.processed} bookings failed in this cycle", report=report
            )
        return report

    def _handle_result(self, result: ConflictResult, report: CycleReport) -> None:
        verdict = result.verdict
        if verdict is not None:
            self.audit.log_weather_check(
                result.booking_id, verdict.is_valid, verdict.confidence, verdict.violations
            )

        booking = self.bookings.get(result.booking_id)
        participants = booking.participant_ids if booking else []

        if not result.has_conflict:
            if result.previous_status == BookingStatus.AT_RISK and result.new_status == BookingStatus.CONFIRMED:
                self.notifier.emit(
                    NotificationEventType.WEATHER_CLEARED,
                    result.booking_id,
                    participants,
                    {"confidence": verdict.confidence if verdict else None},
                )
                report.notifications += 1
            return

        report.conflicts += 1
        self.audit.log_conflict_detected(
            result.booking_id,
            result.severity.value,
            result.hours_until_departure,
            verdict.violations if verdict else [],
        )

        if result.should_notify:
            self.notifier.emit(
                NotificationEventType.WEATHER_ALERT,
                result.booking_id,
                participants,
                {
                    "severity": result.severity.value,
                    "hours_until_departure": result.hours_until_departure,
                    "violations": verdict.violations if verdict else [],
                    "recommendations": result.recommendations,
                },
            )
            report.notifications += 1

        if result.severity == Severity.CRITICAL and self.auto_reschedule_critical:
            try:
                self.workflow.start(result.booking_id, actor="SYSTEM")
                report.reschedules_started += 1
            except NoCandidateSlot as e:
                logger.warning("auto_reschedule_no_slot", booking_id=result.booking_id, error=str(e))


def main() -> None:
    from ..container import build_container
    from ..logging import configure_logging
    from ..settings import settings

    configure_logging(level=settings.log_level, json_output=settings.log_json)
    container = build_container()
    try:
        report = container.monitor.run_cycle()
    except PartialCycleFailure as e:
        print(json.dumps(e.report.to_dict() if e.report else {"error": str(e)}, indent=2))
        raise SystemExit(1)
    print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    main()
