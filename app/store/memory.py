# app/store/memory.py
"""
In-memory stores.

Used by tests and by STORE_BACKEND=memory deployments. One lock per
store keeps each operation atomic.
"""

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from ..audit.models import AuditEvent
from ..availability.models import DAY_START, AvailabilityOverride, AvailabilityPattern
from ..scheduling.models import Booking, BookingStatus, PreferenceRanking, RescheduleOption
from .base import AuditStore, AvailabilityStore, BookingStore, PreferenceStore, RescheduleOptionStore


class InMemoryBookingStore(BookingStore):

    def __init__(self, bookings: Optional[Iterable[Booking]] = None):
        self._lock = threading.Lock()
        self._bookings: Dict[str, Booking] = {}
        for booking in bookings or []:
            self.add(booking)

    def add(self, booking: Booking) -> Booking:
        with self._lock:
            self._bookings[booking.id] = replace(booking)
        return booking

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return replace(booking) if booking else None

    def list_in_window(
        self,
        statuses: Iterable[BookingStatus],
        start: datetime,
        end: datetime,
    ) -> List[Booking]:
        wanted = set(statuses)
        with self._lock:
            matches = [
                replace(b) for b in self._bookings.values()
                if b.status in wanted and start <= b.scheduled_time <= end
            ]
        return sorted(matches, key=lambda b: b.scheduled_time)

    def list_by_status(self, status: BookingStatus) -> List[Booking]:
        with self._lock:
            matches = [replace(b) for b in self._bookings.values() if b.status == status]
        return sorted(matches, key=lambda b: b.scheduled_time)

    def update_status(self, booking_id: str, status: BookingStatus) -> None:
        with self._lock:
            self._bookings[booking_id].status = status

    def update_schedule(self, booking_id: str, scheduled_time: datetime) -> None:
        with self._lock:
            self._bookings[booking_id].scheduled_time = scheduled_time


class InMemoryRescheduleOptionStore(RescheduleOptionStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._options: Dict[str, RescheduleOption] = {}

    def replace_for_booking(self, booking_id: str, options: List[RescheduleOption]) -> None:
        with self._lock:
            for option_id in [o.id for o in self._options.values() if o.booking_id == booking_id]:
                del self._options[option_id]
            for option in options:
                self._options[option.id] = option

    def list_for_booking(self, booking_id: str) -> List[RescheduleOption]:
        with self._lock:
            options = [o for o in self._options.values() if o.booking_id == booking_id]
        return sorted(options, key=lambda o: (-o.score, o.suggested_time))

    def get(self, option_id: str) -> Optional[RescheduleOption]:
        with self._lock:
            return self._options.get(option_id)


class InMemoryPreferenceStore(PreferenceStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._rankings: Dict[Tuple[str, str], PreferenceRanking] = {}

    def create_empty(self, booking_id: str, user_id: str, deadline: datetime) -> bool:
        key = (booking_id, user_id)
        with self._lock:
            if key in self._rankings:
                return False
            self._rankings[key] = PreferenceRanking(
                booking_id=booking_id, user_id=user_id, deadline=deadline
            )
            return True

    def get(self, booking_id: str, user_id: str) -> Optional[PreferenceRanking]:
        with self._lock:
            ranking = self._rankings.get((booking_id, user_id))
            return replace(ranking) if ranking else None

    def list_for_booking(self, booking_id: str) -> List[PreferenceRanking]:
        with self._lock:
            rankings = [replace(r) for (b, _), r in self._rankings.items() if b == booking_id]
        return sorted(rankings, key=lambda r: r.created_at)

    def save_submission(self, ranking: PreferenceRanking) -> PreferenceRanking:
        with self._lock:
            self._rankings[(ranking.booking_id, ranking.user_id)] = replace(ranking)
        return ranking

    def delete_for_booking(self, booking_id: str) -> int:
        with self._lock:
            keys = [key for key in self._rankings if key[0] == booking_id]
            for key in keys:
                del self._rankings[key]
        return len(keys)


class InMemoryAvailabilityStore(AvailabilityStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._patterns: List[AvailabilityPattern] = []
        self._overrides: List[AvailabilityOverride] = []

    def list_patterns(self, user_id: str) -> List[AvailabilityPattern]:
        with self._lock:
            patterns = [p for p in self._patterns if p.user_id == user_id]
        return sorted(patterns, key=lambda p: (p.day_of_week, p.start_time))

    def list_overrides(self, user_id: str, start_date: date, end_date: date) -> List[AvailabilityOverride]:
        with self._lock:
            overrides = [
                o for o in self._overrides
                if o.user_id == user_id and start_date <= o.override_date <= end_date
            ]
        return sorted(overrides, key=lambda o: (o.override_date, o.start_time or DAY_START))

    def add_pattern(self, pattern: AvailabilityPattern) -> AvailabilityPattern:
        with self._lock:
            self._patterns.append(pattern)
        return pattern

    def add_override(self, override: AvailabilityOverride) -> AvailabilityOverride:
        with self._lock:
            self._overrides.append(override)
        return override


class InMemoryAuditStore(AuditStore):

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[AuditEvent] = []

    def append(self, event: AuditEvent) -> None:
        with self._lock:
            self.events.append(event)

    def list_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        with self._lock:
            return [
                e for e in self.events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
