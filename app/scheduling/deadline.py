# app/scheduling/deadline.py
"""
Preference submission deadlines.

deadline = min(scheduled_time - 30 min, notified_at + 12 h)

Whether a deadline has passed is recomputed from the clock on every check.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..logging import get_scheduling_logger

logger = get_scheduling_logger("deadline")

BEFORE_DEPARTURE = timedelta(minutes=30)
AFTER_NOTIFICATION = timedelta(hours=12)
APPROACHING_MINUTES = 120


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def calculate_deadline(scheduled_time: datetime, notified_at: Optional[datetime] = None) -> datetime:
    """Earlier of 30 minutes before departure and 12 hours after notification."""
    notified_at = _now(notified_at)
    deadline = min(scheduled_time - BEFORE_DEPARTURE, notified_at + AFTER_NOTIFICATION)
    logger.debug(
        "deadline_calculated",
        scheduled_time=scheduled_time.isoformat(),
        notified_at=notified_at.isoformat(),
        deadline=deadline.isoformat(),
    )
    return deadline


def is_deadline_passed(deadline: datetime, now: Optional[datetime] = None) -> bool:
    return _now(now) > deadline


def minutes_until_deadline(deadline: datetime, now: Optional[datetime] = None) -> int:
    """Whole minutes remaining, floored at 0."""
    remaining = (deadline - _now(now)).total_seconds()
    return max(0, int(remaining // 60))


def is_deadline_approaching(deadline: datetime, now: Optional[datetime] = None) -> bool:
    """True within the last two hours before the deadline."""
    minutes = minutes_until_deadline(deadline, now)
    return 0 < minutes <= APPROACHING_MINUTES


def format_deadline(deadline: datetime, now: Optional[datetime] = None) -> str:
    minutes = minutes_until_deadline(deadline, now)
    if minutes == 0:
        return "Deadline passed"

    hours, mins = divmod(minutes, 60)
    if hours > 24:
        days = hours // 24
        return f"{days} day{'s' if days > 1 else ''} remaining"
    if hours > 0:
        return f"{hours}h {mins}m remaining"
    return f"{mins} minute{'s' if mins > 1 else ''} remaining"
