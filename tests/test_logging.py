# tests/test_logging.py
"""
Test structured log formatting.
"""

import json
import logging

from app.logging import KeyValueFormatter, StructuredLogFormatter, StructuredLogger


def make_record(message="weather_cache_hit", **fields):
    record = logging.LogRecord("app.weather.cache", logging.INFO, __file__, 10, message, None, None)
    record.structured_data = fields
    return record


class TestFormatters:
    """Tests for the JSON and key=value formatters."""

    def test_json_fields(self):
        line = json.loads(StructuredLogFormatter().format(make_record(coord="39.9088,-105.1172")))

        assert line["message"] == "weather_cache_hit"
        assert line["logger"] == "app.weather.cache"
        assert line["coord"] == "39.9088,-105.1172"
        assert "source" not in line

    def test_credentials_masked(self):
        """Credential-like fields never reach the output."""
        record = make_record(appid="secret", api_key="secret2")

        assert "secret" not in StructuredLogFormatter().format(record)
        assert "secret" not in KeyValueFormatter().format(record)

    def test_key_value_output(self):
        line = KeyValueFormatter().format(make_record("conflict_detected", severity="critical"))

        assert line.endswith("app.weather.cache: conflict_detected severity=critical")


class TestStructuredLogger:
    """Tests for StructuredLogger.bind."""

    def test_bound_fields_attached(self, caplog):
        logger = StructuredLogger("app.test").bind(booking_id="booking-1")

        with caplog.at_level(logging.INFO, logger="app.test"):
            logger.info("reschedule_confirmed", option_id="opt-1")

        assert caplog.records[-1].structured_data == {"booking_id": "booking-1", "option_id": "opt-1"}
