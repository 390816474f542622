# tests/test_sql_store.py
"""
Test the PostgreSQL stores.

These tests need a reachable database (see conftest); they are skipped
otherwise. Ids are random so repeated runs do not collide.
"""

from datetime import date, time, timedelta
from uuid import uuid4

import pytest

from conftest import FIXED_NOW, INSTRUCTOR_ID, STUDENT_ID, make_booking, make_observation

from app.audit.models import AuditEvent
from app.availability.models import AvailabilityOverride, AvailabilityPattern
from app.container import sql_stores
from app.scheduling.models import BookingStatus, RescheduleOption


@pytest.fixture
def sql(session_factory):
    return sql_stores(session_factory)


@pytest.fixture
def booking(sql):
    booking = make_booking(booking_id=f"booking-{uuid4()}", hours_ahead=1)
    sql.bookings.add(booking)
    return booking


class TestSqlBookingStore:
    """Tests for SqlBookingStore."""

    def test_round_trip(self, sql, booking):
        loaded = sql.bookings.get(booking.id)

        assert loaded.route.departure_id == "KBJC"
        assert loaded.route.departure == booking.route.departure
        assert loaded.scheduled_time == booking.scheduled_time
        assert loaded.status == BookingStatus.CONFIRMED

    def test_status_and_schedule_updates(self, sql, booking):
        new_time = booking.scheduled_time + timedelta(hours=3)
        sql.bookings.update_status(booking.id, BookingStatus.AT_RISK)
        sql.bookings.update_schedule(booking.id, new_time)

        loaded = sql.bookings.get(booking.id)
        assert loaded.status == BookingStatus.AT_RISK
        assert loaded.scheduled_time == new_time

    def test_list_in_window(self, sql, booking):
        """Window queries filter by status."""
        window = sql.bookings.list_in_window(
            [BookingStatus.CONFIRMED], FIXED_NOW, FIXED_NOW + timedelta(hours=2)
        )
        assert booking.id in [b.id for b in window]

        window = sql.bookings.list_in_window(
            [BookingStatus.AT_RISK], FIXED_NOW, FIXED_NOW + timedelta(hours=2)
        )
        assert booking.id not in [b.id for b in window]

    def test_missing(self, sql):
        assert sql.bookings.get("does-not-exist") is None


class TestSqlOptionAndPreferenceStores:
    """Tests for options and rankings."""

    def test_replace_options(self, sql, booking):
        """Replacing drops the earlier batch; weather survives the JSONB round trip."""
        first = RescheduleOption(booking_id=booking.id, suggested_time=FIXED_NOW, confidence=100, score=1000)
        sql.options.replace_for_booking(booking.id, [first])

        second = RescheduleOption(
            booking_id=booking.id,
            suggested_time=FIXED_NOW + timedelta(hours=2),
            confidence=80,
            score=898,
            weather=[make_observation(confidence=80)],
        )
        sql.options.replace_for_booking(booking.id, [second])

        options = sql.options.list_for_booking(booking.id)
        assert [o.id for o in options] == [second.id]
        assert options[0].weather[0].confidence == 80
        assert sql.options.get(first.id) is None

    def test_rankings(self, sql, booking):
        """Empty rows are created once; submissions overwrite."""
        deadline = FIXED_NOW + timedelta(minutes=30)
        assert sql.preferences.create_empty(booking.id, STUDENT_ID, deadline)
        assert not sql.preferences.create_empty(booking.id, STUDENT_ID, deadline + timedelta(hours=1))
        sql.preferences.create_empty(booking.id, INSTRUCTOR_ID, deadline)

        ranking = sql.preferences.get(booking.id, STUDENT_ID)
        assert ranking.deadline == deadline
        assert not ranking.is_submitted

        ranking.option_ids = ["a", "b"]
        ranking.unavailable_option_ids = ["c"]
        ranking.submitted_at = FIXED_NOW
        sql.preferences.save_submission(ranking)

        loaded = sql.preferences.get(booking.id, STUDENT_ID)
        assert loaded.option_ids == ["a", "b"]
        assert loaded.unavailable_option_ids == ["c"]
        assert len(sql.preferences.list_for_booking(booking.id)) == 2

        assert sql.preferences.delete_for_booking(booking.id) == 2
        assert sql.preferences.list_for_booking(booking.id) == []


class TestSqlAvailabilityAndAuditStores:
    """Tests for availability and audit tables."""

    def test_patterns_and_overrides(self, sql):
        user_id = f"user-{uuid4()}"
        sql.availability.add_pattern(AvailabilityPattern(
            user_id=user_id, day_of_week=0, start_time=time(8, 0), end_time=time(12, 0)
        ))
        sql.availability.add_override(AvailabilityOverride(
            user_id=user_id, override_date=date(2025, 6, 3), reason="Checkride"
        ))

        patterns = sql.availability.list_patterns(user_id)
        assert [(p.day_of_week, p.start_time) for p in patterns] == [(0, time(8, 0))]

        overrides = sql.availability.list_overrides(user_id, date(2025, 6, 1), date(2025, 6, 7))
        assert overrides[0].start_time is None
        assert overrides[0].is_blocked

    def test_audit(self, sql):
        entity_id = f"booking-{uuid4()}"
        sql.audit.append(AuditEvent(
            event_type="status_changed",
            entity_type="booking",
            entity_id=entity_id,
            data={"from_status": "CONFIRMED", "to_status": "AT_RISK"},
        ))

        events = sql.audit.list_for_entity("booking", entity_id)
        assert events[0].data["to_status"] == "AT_RISK"
