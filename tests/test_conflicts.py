# tests/test_conflicts.py
"""
Test weather conflict detection.
"""

import pytest

from conftest import make_booking

from app.scheduling.conflicts import build_recommendations, classify_severity
from app.scheduling.models import BookingStatus, ConflictType, Severity
from app.weather.models import ValidationVerdict


@pytest.fixture
def bad_weather(primary, secondary):
    primary.set_weather(visibility_miles=2.0)
    secondary.set_weather(visibility_miles=2.0)


class ExplodingValidator:
    def validate_route(self, route, level, at=None):
        raise RuntimeError("validator crashed")


class TestClassifySeverity:
    """Tests for severity by time to departure."""

    @pytest.mark.parametrize("hours,severity", [
        (0.5, Severity.CRITICAL),
        (2.0, Severity.CRITICAL),
        (2.01, Severity.WARNING),
        (12.0, Severity.WARNING),
        (12.5, Severity.NONE),
        (47.0, Severity.NONE),
    ])
    def test_bands(self, hours, severity):
        """<= 2 h critical, <= 12 h warning, otherwise none."""
        assert classify_severity(hours) == severity


class TestRecommendations:
    """Tests for build_recommendations."""

    def test_urgent_includes_violations(self):
        """Urgent advice comes first, followed by the violations."""
        verdict = ValidationVerdict(is_valid=False, violations=["Departure: Visibility 2 mi < 5 mi minimum"])

        recommendations = build_recommendations(verdict, 1.0)

        assert recommendations[0] == "URGENT: Flight departure is within 2 hours"
        assert recommendations[-2] == "Weather violations:"
        assert recommendations[-1] == "- Departure: Visibility 2 mi < 5 mi minimum"

    def test_far_out(self):
        """More than 12 hours out suggests monitoring."""
        verdict = ValidationVerdict(is_valid=False)

        assert build_recommendations(verdict, 20)[0] == "Flight departure is more than 12 hours away"


class TestConflictDetector:
    """Tests for ConflictDetector."""

    def test_critical_conflict_marks_at_risk(self, container, stores, bad_weather):
        """Invalid weather 1 h out is critical and moves the booking to AT_RISK."""
        stores.bookings.add(make_booking(hours_ahead=1))

        result = container.detector.scan_upcoming(48)[0]

        assert result.has_conflict
        assert result.conflict_type == ConflictType.WEATHER
        assert result.severity == Severity.CRITICAL
        assert result.should_notify
        assert result.previous_status == BookingStatus.CONFIRMED
        assert result.new_status == BookingStatus.AT_RISK
        assert stores.bookings.get("booking-1").status == BookingStatus.AT_RISK

    def test_repeat_warning_on_at_risk_not_notified(self, container, stores, bad_weather):
        """An AT_RISK booking is only re-notified when critical."""
        stores.bookings.add(make_booking(hours_ahead=6, status=BookingStatus.AT_RISK))

        result = container.detector.scan_upcoming(48)[0]

        assert result.severity == Severity.WARNING
        assert not result.should_notify
        assert not result.status_changed

    def test_far_conflict_still_at_risk(self, container, stores, bad_weather):
        """A conflict beyond 12 h has severity none but is still a conflict."""
        stores.bookings.add(make_booking(hours_ahead=30))

        result = container.detector.scan_upcoming(48)[0]

        assert result.has_conflict
        assert result.severity == Severity.NONE
        assert result.should_notify
        assert stores.bookings.get("booking-1").status == BookingStatus.AT_RISK

    def test_cleared_weather_restores_confirmed(self, container, stores):
        """An AT_RISK booking with valid weather goes back to CONFIRMED."""
        stores.bookings.add(make_booking(status=BookingStatus.AT_RISK))

        result = container.detector.scan_upcoming(48)[0]

        assert not result.has_conflict
        assert result.new_status == BookingStatus.CONFIRMED
        assert stores.bookings.get("booking-1").status == BookingStatus.CONFIRMED

    def test_scan_window_and_statuses(self, container, stores):
        """Only CONFIRMED/AT_RISK bookings inside the window are checked."""
        stores.bookings.add(make_booking("inside", hours_ahead=3))
        stores.bookings.add(make_booking("too-far", hours_ahead=50))
        stores.bookings.add(make_booking("past", hours_ahead=-1))
        stores.bookings.add(make_booking("rescheduling", hours_ahead=2, status=BookingStatus.RESCHEDULING))
        stores.bookings.add(make_booking("earlier", hours_ahead=1, status=BookingStatus.AT_RISK))

        results = container.detector.scan_upcoming(48)

        assert [r.booking_id for r in results] == ["earlier", "inside"]

    def test_booking_error_does_not_stop_scan(self, container, stores):
        """A booking that raises is reported with an error; the rest continue."""
        stores.bookings.add(make_booking("a", hours_ahead=1))
        stores.bookings.add(make_booking("b", hours_ahead=2))
        container.detector.validator = ExplodingValidator()

        results = container.detector.scan_upcoming(48)

        assert len(results) == 2
        assert all(r.error == "validator crashed" for r in results)
        assert stores.bookings.get("a").status == BookingStatus.CONFIRMED

    def test_conflict_statistics(self, container, stores):
        """Counts bookings per status in the window."""
        stores.bookings.add(make_booking("a", hours_ahead=1))
        stores.bookings.add(make_booking("b", hours_ahead=2, status=BookingStatus.AT_RISK))
        stores.bookings.add(make_booking("c", hours_ahead=3, status=BookingStatus.RESCHEDULING))

        stats = container.detector.conflict_statistics()

        assert stats["confirmed"] == 1
        assert stats["at_risk"] == 1
        assert stats["rescheduling"] == 1
        assert stats["total"] == 3
