# app/notifications/webhook.py
"""
Webhook sink - POSTs notification events to configured URLs.

Every attempt, successful or not, is kept in the sink's delivery log.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from ..logging import get_logger
from .dispatcher import NotificationEvent

logger = get_logger(__name__)

USER_AGENT = "weather-rescheduler/1.0"


@dataclass
class WebhookDelivery:
    """Record of a webhook delivery attempt."""
    delivery_id: str
    url: str
    event_id: str
    event_type: str
    payload: Dict[str, Any]
    response_status: Optional[int]
    success: bool
    error: Optional[str]
    delivered_at: datetime


class WebhookSink:

    name = "webhook"

    def __init__(
        self,
        urls: List[str],
        timeout_seconds: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.urls = list(urls)
        self.headers = headers or {}
        self.client = httpx.Client(timeout=timeout_seconds, transport=transport)
        self.deliveries: List[WebhookDelivery] = []

    def send(self, event: NotificationEvent) -> None:
        payload = event.to_dict()
        for url in self.urls:
            delivery = self._deliver(url, event, payload)
            self.deliveries.append(delivery)

    def _deliver(self, url: str, event: NotificationEvent, payload: Dict[str, Any]) -> WebhookDelivery:
        delivery_id = str(uuid4())
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Webhook-Event": event.event_type.value,
            "X-Webhook-Delivery-ID": delivery_id,
            **self.headers,
        }

        status = None
        error = None
        try:
            response = self.client.post(url, json=payload, headers=headers)
            status = response.status_code
            if not 200 <= status < 300:
                error = f"HTTP {status}"
        except httpx.TimeoutException as e:
            error = f"Timeout: {e}"
        except httpx.HTTPError as e:
            error = str(e)

        success = error is None
        if success:
            logger.info("webhook_delivered", url=url, event_type=event.event_type.value, status_code=status)
        else:
            logger.warning(
                "webhook_delivery_failed",
                url=url,
                event_type=event.event_type.value,
                error=error,
            )

        return WebhookDelivery(
            delivery_id=delivery_id,
            url=url,
            event_id=event.event_id,
            event_type=event.event_type.value,
            payload=payload,
            response_status=status,
            success=success,
            error=error,
            delivered_at=datetime.now(timezone.utc),
        )

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
