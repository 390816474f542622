# app/availability/models.py
"""
Availability models.

Weekdays follow Python's date.weekday(): 0 = Monday ... 6 = Sunday.
Times are local wall-clock times in the schedule timezone.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

# An override without times covers the whole day
DAY_START = time(0, 0)
DAY_END = time(23, 59)


class SlotSource(Enum):
    RECURRING = "recurring"
    OVERRIDE = "override"


@dataclass
class AvailabilityPattern:
    """Recurring weekly availability."""
    user_id: str
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True
    id: str = field(default_factory=lambda: str(uuid4()))


@dataclass
class AvailabilityOverride:
    """One-off change for a date: blocks time (is_blocked) or adds it."""
    user_id: str
    override_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_blocked: bool = True
    reason: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class AvailabilitySlot:
    """Computed availability for one date and time range."""
    date: date
    start_time: time
    end_time: time
    is_available: bool
    source: SlotSource
    reason: Optional[str] = None

    def covers(self, moment: time) -> bool:
        return self.start_time <= moment <= self.end_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "is_available": self.is_available,
            "source": self.source.value,
            "reason": self.reason,
        }
