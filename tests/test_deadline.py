# tests/test_deadline.py
"""
Test preference deadline calculation.
"""

from datetime import timedelta

from conftest import FIXED_NOW

from app.scheduling.deadline import (
    calculate_deadline,
    format_deadline,
    is_deadline_approaching,
    is_deadline_passed,
    minutes_until_deadline,
)


class TestCalculateDeadline:
    """Tests for calculate_deadline."""

    def test_near_departure_uses_thirty_minutes_before(self):
        """A flight in 5 hours gets a deadline 30 minutes before departure."""
        scheduled = FIXED_NOW + timedelta(hours=5)

        assert calculate_deadline(scheduled, FIXED_NOW) == scheduled - timedelta(minutes=30)

    def test_far_departure_uses_twelve_hours_after_notice(self):
        """A flight in 3 days gets a deadline 12 hours after notification."""
        scheduled = FIXED_NOW + timedelta(days=3)

        assert calculate_deadline(scheduled, FIXED_NOW) == FIXED_NOW + timedelta(hours=12)


class TestDeadlineChecks:
    """Tests for deadline status helpers."""

    def test_not_passed_at_exact_deadline(self):
        """The deadline instant itself is still open."""
        assert not is_deadline_passed(FIXED_NOW, FIXED_NOW)

    def test_passed_one_microsecond_later(self):
        """Any instant after the deadline is too late."""
        assert is_deadline_passed(FIXED_NOW, FIXED_NOW + timedelta(microseconds=1))

    def test_minutes_floored_at_zero(self):
        """Remaining minutes never go negative."""
        assert minutes_until_deadline(FIXED_NOW, FIXED_NOW + timedelta(hours=1)) == 0
        assert minutes_until_deadline(FIXED_NOW + timedelta(minutes=90, seconds=30), FIXED_NOW) == 90

    def test_approaching_within_two_hours(self):
        """Approaching means 1-120 minutes left."""
        assert is_deadline_approaching(FIXED_NOW + timedelta(minutes=120), FIXED_NOW)
        assert not is_deadline_approaching(FIXED_NOW + timedelta(minutes=121), FIXED_NOW)
        assert not is_deadline_approaching(FIXED_NOW, FIXED_NOW)


class TestFormatDeadline:
    """Tests for format_deadline."""

    def test_passed(self):
        assert format_deadline(FIXED_NOW, FIXED_NOW) == "Deadline passed"

    def test_minutes(self):
        assert format_deadline(FIXED_NOW + timedelta(minutes=1), FIXED_NOW) == "1 minute remaining"
        assert format_deadline(FIXED_NOW + timedelta(minutes=45), FIXED_NOW) == "45 minutes remaining"

    def test_hours_and_minutes(self):
        assert format_deadline(FIXED_NOW + timedelta(hours=5, minutes=10), FIXED_NOW) == "5h 10m remaining"

    def test_days(self):
        assert format_deadline(FIXED_NOW + timedelta(hours=25), FIXED_NOW) == "1 day remaining"
        assert format_deadline(FIXED_NOW + timedelta(days=3), FIXED_NOW) == "3 days remaining"
