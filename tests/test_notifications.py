# tests/test_notifications.py
"""
Test notification dispatch and webhook delivery.
"""

import json

import httpx

from app.notifications.dispatcher import (
    InMemorySink,
    NotificationDispatcher,
    NotificationEventType,
)
from app.notifications.webhook import WebhookSink


class BrokenSink:
    name = "broken"

    def send(self, event):
        raise RuntimeError("smtp down")


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    def test_fans_out_to_every_sink(self):
        first, second = InMemorySink(), InMemorySink()
        dispatcher = NotificationDispatcher([first, second])

        event = dispatcher.emit(
            NotificationEventType.WEATHER_ALERT, "booking-1", ["student-1", "instructor-1"], {"severity": "critical"}
        )

        assert first.events == [event]
        assert second.events == [event]
        assert event.to_dict()["event_type"] == "weather-alert"

    def test_failing_sink_skipped(self):
        """A broken sink never stops delivery to the others."""
        inbox = InMemorySink()
        dispatcher = NotificationDispatcher([BrokenSink(), inbox])

        dispatcher.emit(NotificationEventType.ESCALATION, "booking-1", [])

        assert len(inbox.for_booking("booking-1")) == 1


class TestWebhookSink:
    """Tests for WebhookSink."""

    def _event(self):
        return NotificationDispatcher().emit(
            NotificationEventType.OPTIONS_AVAILABLE, "booking-1", ["student-1"], {"option_count": 3}
        )

    def test_successful_delivery(self):
        """Events are POSTed as JSON with event headers."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        sink = WebhookSink(
            ["https://hooks.example.com/a"],
            headers={"Authorization": "Bearer token"},
            transport=httpx.MockTransport(handler),
        )
        event = self._event()
        sink.send(event)
        sink.close()

        request = seen[0]
        assert request.headers["X-Webhook-Event"] == "options-available"
        assert request.headers["Authorization"] == "Bearer token"
        assert json.loads(request.content)["event_id"] == event.event_id
        delivery = sink.deliveries[0]
        assert delivery.success
        assert delivery.response_status == 204

    def test_failed_delivery_recorded(self):
        """Non-2xx responses are recorded, not raised."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        with WebhookSink(["https://a.example.com", "https://b.example.com"], transport=transport) as sink:
            sink.send(self._event())

        assert len(sink.deliveries) == 2
        assert not sink.deliveries[0].success
        assert sink.deliveries[0].error == "HTTP 500"

    def test_connection_error_recorded(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with WebhookSink(["https://down.example.com"], transport=httpx.MockTransport(handler)) as sink:
            sink.send(self._event())

        assert sink.deliveries[0].response_status is None
        assert "refused" in sink.deliveries[0].error
