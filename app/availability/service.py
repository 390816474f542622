# app/availability/service.py
"""
Availability resolution.

Combines recurring weekly patterns with per-date overrides. For a date
with any override, the overrides replace the patterns entirely; an
override without times covers the whole day.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from ..logging import get_logger
from ..store.base import AvailabilityStore
from .models import (
    DAY_END,
    DAY_START,
    AvailabilityOverride,
    AvailabilityPattern,
    AvailabilitySlot,
    SlotSource,
)

logger = get_logger(__name__)


def compute_slots(
    patterns: List[AvailabilityPattern],
    overrides: List[AvailabilityOverride],
    start_date: date,
    end_date: date,
) -> List[AvailabilitySlot]:
    """Availability slots for every date in [start_date, end_date]."""
    by_date: Dict[date, List[AvailabilityOverride]] = {}
    for override in overrides:
        by_date.setdefault(override.override_date, []).append(override)

    slots = []
    current = start_date
    while current <= end_date:
        day_overrides = by_date.get(current, [])
        if day_overrides:
            for override in day_overrides:
                slots.append(AvailabilitySlot(
                    date=current,
                    start_time=override.start_time or DAY_START,
                    end_time=override.end_time or DAY_END,
                    is_available=not override.is_blocked,
                    source=SlotSource.OVERRIDE,
                    reason=override.reason,
                ))
        else:
            for pattern in patterns:
                if pattern.is_active and pattern.day_of_week == current.weekday():
                    slots.append(AvailabilitySlot(
                        date=current,
                        start_time=pattern.start_time,
                        end_time=pattern.end_time,
                        is_available=True,
                        source=SlotSource.RECURRING,
                    ))
        current += timedelta(days=1)
    return slots


class AvailabilityService:
    """
    Answers "is this user free at this instant?".

    Instants are converted to the schedule timezone before comparison with
    pattern and override times.
    """

    def __init__(self, store: AvailabilityStore, timezone: str = "UTC"):
        self.store = store
        self.tz = ZoneInfo(timezone)

    def get_availability(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[AvailabilitySlot]:
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        patterns = self.store.list_patterns(user_id)
        overrides = self.store.list_overrides(user_id, start_date, end_date)
        return compute_slots(patterns, overrides, start_date, end_date)

    def is_available(self, user_id: str, at: datetime) -> bool:
        local = at.astimezone(self.tz)
        day = local.date()
        moment = local.time().replace(second=0, microsecond=0, tzinfo=None)

        slots = self.get_availability(user_id, day, day)
        blocked = any(not s.is_available and s.covers(moment) for s in slots)
        available = any(s.is_available and s.covers(moment) for s in slots)
        return available and not blocked

    def first_unavailable(self, user_ids: List[str], at: datetime) -> Optional[str]:
        """First user in user_ids who is not free at `at`, or None."""
        for user_id in user_ids:
            if not self.is_available(user_id, at):
                logger.debug("user_unavailable", user_id=user_id, at=at.isoformat())
                return user_id
        return None
