# app/store/base.py
"""
Persistence boundaries.

The core only talks to these interfaces. memory.py backs tests and
single-process demo runs; sql.py backs PostgreSQL through SQLAlchemy.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterable, List, Optional

from ..audit.models import AuditEvent
from ..availability.models import AvailabilityOverride, AvailabilityPattern
from ..scheduling.models import Booking, BookingStatus, PreferenceRanking, RescheduleOption


class BookingStore(ABC):

    @abstractmethod
    def add(self, booking: Booking) -> Booking:
        ...

    @abstractmethod
    def get(self, booking_id: str) -> Optional[Booking]:
        ...

    @abstractmethod
    def list_in_window(
        self,
        statuses: Iterable[BookingStatus],
        start: datetime,
        end: datetime,
    ) -> List[Booking]:
        """Bookings with a status in statuses and start <= scheduled_time <= end, earliest first."""

    @abstractmethod
    def list_by_status(self, status: BookingStatus) -> List[Booking]:
        ...

    @abstractmethod
    def update_status(self, booking_id: str, status: BookingStatus) -> None:
        ...

    @abstractmethod
    def update_schedule(self, booking_id: str, scheduled_time: datetime) -> None:
        ...


class RescheduleOptionStore(ABC):

    @abstractmethod
    def replace_for_booking(self, booking_id: str, options: List[RescheduleOption]) -> None:
        """Delete the booking's existing options and store the new batch."""

    @abstractmethod
    def list_for_booking(self, booking_id: str) -> List[RescheduleOption]:
        """Options ordered by score, best first."""

    @abstractmethod
    def get(self, option_id: str) -> Optional[RescheduleOption]:
        ...


class PreferenceStore(ABC):

    @abstractmethod
    def create_empty(self, booking_id: str, user_id: str, deadline: datetime) -> bool:
        """Insert an empty ranking unless one exists. Returns True if inserted."""

    @abstractmethod
    def get(self, booking_id: str, user_id: str) -> Optional[PreferenceRanking]:
        ...

    @abstractmethod
    def list_for_booking(self, booking_id: str) -> List[PreferenceRanking]:
        ...

    @abstractmethod
    def save_submission(self, ranking: PreferenceRanking) -> PreferenceRanking:
        """Atomically overwrite the (booking, user) row with a submission."""

    @abstractmethod
    def delete_for_booking(self, booking_id: str) -> int:
        ...


class AvailabilityStore(ABC):

    @abstractmethod
    def list_patterns(self, user_id: str) -> List[AvailabilityPattern]:
        ...

    @abstractmethod
    def list_overrides(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[AvailabilityOverride]:
        ...

    @abstractmethod
    def add_pattern(self, pattern: AvailabilityPattern) -> AvailabilityPattern:
        ...

    @abstractmethod
    def add_override(self, override: AvailabilityOverride) -> AvailabilityOverride:
        ...


class AuditStore(ABC):

    @abstractmethod
    def append(self, event: AuditEvent) -> None:
        ...

    @abstractmethod
    def list_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        ...
