# Notifications module - event dispatch to in-app and webhook sinks
from .dispatcher import (
    InMemorySink,
    NotificationDispatcher,
    NotificationEvent,
    NotificationEventType,
)
from .webhook import WebhookDelivery, WebhookSink

__all__ = [
    "InMemorySink",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationEventType",
    "WebhookDelivery",
    "WebhookSink",
]
