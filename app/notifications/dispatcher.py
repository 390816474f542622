# app/notifications/dispatcher.py
"""
Notification dispatch.

The core emits NotificationEvents; sinks deliver them (in-memory log,
webhooks). A sink that fails is logged and skipped: notification problems
never fail the operation that raised the event.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

from ..logging import get_logger

logger = get_logger(__name__)


class NotificationEventType(Enum):
    WEATHER_ALERT = "weather-alert"
    WEATHER_CLEARED = "weather-cleared"
    OPTIONS_AVAILABLE = "options-available"
    RESCHEDULE_CONFIRMED = "reschedule-confirmed"
    ESCALATION = "escalation"


@dataclass
class NotificationEvent:
    event_type: NotificationEventType
    booking_id: str
    participant_ids: List[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "booking_id": self.booking_id,
            "participant_ids": list(self.participant_ids),
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
        }


class NotificationSink(Protocol):
    name: str

    def send(self, event: NotificationEvent) -> None:
        ...


class InMemorySink:
    """Keeps every event in a list (tests, demo runs, in-app feed)."""

    name = "in_memory"

    def __init__(self):
        self.events: List[NotificationEvent] = []

    def send(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def for_booking(self, booking_id: str) -> List[NotificationEvent]:
        return [e for e in self.events if e.booking_id == booking_id]

    def clear(self) -> None:
        self.events.clear()


class NotificationDispatcher:

    def __init__(self, sinks: Optional[List[NotificationSink]] = None):
        self.sinks = list(sinks or [])

    def emit(
        self,
        event_type: NotificationEventType,
        booking_id: str,
        participant_ids: List[str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> NotificationEvent:
        """Build an event and hand it to every sink."""
        event = NotificationEvent(
            event_type=event_type,
            booking_id=booking_id,
            participant_ids=list(participant_ids),
            payload=payload or {},
        )
        logger.info(
            "notification_emitted",
            event_type=event_type.value,
            booking_id=booking_id,
            event_id=event.event_id,
            sink_count=len(self.sinks),
        )
        for sink in self.sinks:
            try:
                sink.send(event)
            except Exception as e:
                logger.error(
                    "notification_sink_failed",
                    sink=getattr(sink, "name", type(sink).__name__),
                    event_id=event.event_id,
                    error=str(e),
                )
        return event
