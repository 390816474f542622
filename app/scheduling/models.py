# app/scheduling/models.py
"""
Scheduling models: bookings, reschedule options, preference rankings and
conflict results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..validation.minimums import CertificationLevel
from ..weather.models import Route, ValidationVerdict, WeatherObservation


class BookingStatus(Enum):
    CONFIRMED = "CONFIRMED"
    AT_RISK = "AT_RISK"
    RESCHEDULING = "RESCHEDULING"
    RESCHEDULED = "RESCHEDULED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Statuses the monitor scans
ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.AT_RISK)


class Severity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NONE = "none"


class ConflictType(Enum):
    WEATHER = "weather"
    NONE = "none"


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Booking:
    """A scheduled training flight. Owned by the booking system."""
    id: str
    student_id: str
    instructor_id: str
    route: Route
    scheduled_time: datetime
    certification_level: CertificationLevel
    status: BookingStatus = BookingStatus.CONFIRMED
    duration_minutes: int = 60

    @property
    def participant_ids(self) -> List[str]:
        return [self.student_id, self.instructor_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "instructor_id": self.instructor_id,
            "route": self.route.to_dict(),
            "scheduled_time": self.scheduled_time.isoformat(),
            "certification_level": self.certification_level.value,
            "status": self.status.value,
            "duration_minutes": self.duration_minutes,
        }


@dataclass(frozen=True)
class CandidateSlot:
    slot_time: datetime
    proximity_score: float
    reason: str = ""


@dataclass
class RescheduleOption:
    """A ranked replacement slot. Only weather- and availability-valid options are stored."""
    booking_id: str
    suggested_time: datetime
    confidence: int
    score: float
    weather: List[WeatherObservation] = field(default_factory=list)
    weather_valid: bool = True
    availability_valid: bool = True
    reason: str = ""
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "suggested_time": self.suggested_time.isoformat(),
            "confidence": self.confidence,
            "score": self.score,
            "weather_valid": self.weather_valid,
            "availability_valid": self.availability_valid,
            "reason": self.reason,
            "weather": [obs.to_dict() for obs in self.weather],
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PreferenceRanking:
    """One participant's ranking of a booking's options."""
    booking_id: str
    user_id: str
    deadline: datetime
    option_ids: List[str] = field(default_factory=list)
    unavailable_option_ids: List[str] = field(default_factory=list)
    submitted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)

    def _option(self, index: int) -> Optional[str]:
        return self.option_ids[index] if len(self.option_ids) > index else None

    @property
    def option_1_id(self) -> Optional[str]:
        return self._option(0)

    @property
    def option_2_id(self) -> Optional[str]:
        return self._option(1)

    @property
    def option_3_id(self) -> Optional[str]:
        return self._option(2)

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "user_id": self.user_id,
            "option_ids": list(self.option_ids),
            "unavailable_option_ids": list(self.unavailable_option_ids),
            "deadline": self.deadline.isoformat(),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ConflictResult:
    """Outcome of checking one booking during a scan."""
    booking_id: str
    has_conflict: bool
    conflict_type: ConflictType = ConflictType.NONE
    severity: Severity = Severity.NONE
    should_notify: bool = False
    verdict: Optional[ValidationVerdict] = None
    previous_status: Optional[BookingStatus] = None
    new_status: Optional[BookingStatus] = None
    hours_until_departure: Optional[float] = None
    recommendations: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def status_changed(self) -> bool:
        return self.new_status is not None and self.new_status != self.previous_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "has_conflict": self.has_conflict,
            "conflict_type": self.conflict_type.value,
            "severity": self.severity.value,
            "should_notify": self.should_notify,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "new_status": self.new_status.value if self.new_status else None,
            "hours_until_departure": (
                round(self.hours_until_departure, 2)
                if self.hours_until_departure is not None else None
            ),
            "violations": list(self.verdict.violations) if self.verdict else [],
            "confidence": self.verdict.confidence if self.verdict else None,
            "recommendations": list(self.recommendations),
            "error": self.error,
        }
