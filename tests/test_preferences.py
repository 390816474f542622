# tests/test_preferences.py
"""
Test preference submission and final selection.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FIXED_NOW, INSTRUCTOR_ID, STUDENT_ID, make_booking

from app.errors import BookingNotFound, DeadlinePassed, InvalidPreference, PreferenceNotFound
from app.scheduling.models import RescheduleOption


@pytest.fixture
def booking(stores):
    booking = make_booking(hours_ahead=1)
    stores.bookings.add(booking)
    return booking


@pytest.fixture
def option_ids(stores, booking):
    options = [
        RescheduleOption(
            booking_id=booking.id,
            suggested_time=FIXED_NOW + timedelta(hours=2 * i + 2),
            confidence=100,
            score=1000 - i,
        )
        for i in range(4)
    ]
    stores.options.replace_for_booking(booking.id, options)
    return [o.id for o in options]


@pytest.fixture
def service(container, booking, option_ids):
    container.preferences.create_rankings(booking)
    return container.preferences


class TestCreateRankings:
    """Tests for create_rankings."""

    def test_rows_share_deadline(self, container, booking, stores):
        """Both participants get an empty row with the same deadline."""
        deadline = container.preferences.create_rankings(booking)

        assert deadline == datetime(2025, 6, 2, 12, 30, tzinfo=timezone.utc)
        rankings = stores.preferences.list_for_booking(booking.id)
        assert {r.user_id for r in rankings} == {STUDENT_ID, INSTRUCTOR_ID}
        assert all(r.deadline == deadline and not r.is_submitted for r in rankings)

    def test_existing_rows_untouched(self, container, booking, clock):
        """A second call keeps the original deadline."""
        first = container.preferences.create_rankings(booking)
        clock.advance(minutes=10)
        container.preferences.create_rankings(booking)

        assert container.preferences.deadline_for(booking.id) == first


class TestSubmitPreference:
    """Tests for submit_preference."""

    def test_submit_and_overwrite(self, service, option_ids):
        """A later submission replaces the earlier one."""
        service.submit_preference("booking-1", STUDENT_ID, option_ids[:3])
        saved = service.submit_preference(
            "booking-1", STUDENT_ID, [option_ids[2]], unavailable_option_ids=[option_ids[0]]
        )

        assert saved.option_ids == [option_ids[2]]
        assert saved.unavailable_option_ids == [option_ids[0]]
        assert saved.submitted_at == FIXED_NOW

    def test_submit_at_deadline_accepted(self, service, option_ids, clock):
        """The deadline instant itself is still in time."""
        clock.now = datetime(2025, 6, 2, 12, 30, tzinfo=timezone.utc)

        saved = service.submit_preference("booking-1", INSTRUCTOR_ID, option_ids[:1])

        assert saved.is_submitted

    def test_submit_after_deadline_rejected(self, service, option_ids, clock):
        """One microsecond late is too late."""
        clock.now = datetime(2025, 6, 2, 12, 30, tzinfo=timezone.utc) + timedelta(microseconds=1)

        with pytest.raises(DeadlinePassed):
            service.submit_preference("booking-1", INSTRUCTOR_ID, option_ids[:1])

    def test_non_participant_rejected(self, service, option_ids):
        """Only the student and instructor may submit."""
        with pytest.raises(InvalidPreference):
            service.submit_preference("booking-1", "someone-else", option_ids[:1])

    @pytest.mark.parametrize("pick", [
        lambda ids: ids[:4],
        lambda ids: [ids[0], ids[0]],
        lambda ids: ["not-an-option"],
    ])
    def test_invalid_rankings(self, service, option_ids, pick):
        """Too many, duplicate or foreign option ids are rejected."""
        with pytest.raises(InvalidPreference):
            service.submit_preference("booking-1", STUDENT_ID, pick(option_ids))

    def test_foreign_unavailable_rejected(self, service, option_ids):
        """Unavailable ids must also belong to the booking."""
        with pytest.raises(InvalidPreference):
            service.submit_preference(
                "booking-1", STUDENT_ID, option_ids[:1], unavailable_option_ids=["other"]
            )

    def test_unknown_booking(self, service):
        with pytest.raises(BookingNotFound):
            service.submit_preference("missing", STUDENT_ID, [])

    def test_missing_ranking_row(self, container, booking, option_ids):
        """Submitting before options were offered fails."""
        with pytest.raises(PreferenceNotFound):
            container.preferences.submit_preference("booking-1", STUDENT_ID, option_ids[:1])


class TestResolveFinalSelection:
    """Tests for resolve_final_selection."""

    def test_instructor_first_choice_wins(self, service, option_ids):
        """The student's ranking never changes the outcome."""
        service.submit_preference("booking-1", STUDENT_ID, [option_ids[0], option_ids[1]])
        service.submit_preference("booking-1", INSTRUCTOR_ID, [option_ids[2], option_ids[0]])

        assert service.both_submitted("booking-1")
        assert service.resolve_final_selection("booking-1") == option_ids[2]

    def test_instructor_without_ranking(self, service, option_ids):
        """No instructor choice means no selection."""
        service.submit_preference("booking-1", STUDENT_ID, option_ids[:1])
        service.submit_preference("booking-1", INSTRUCTOR_ID, [])

        assert service.resolve_final_selection("booking-1") is None

    def test_requires_both_rows(self, container, booking, stores):
        """A single ranking row resolves to nothing."""
        stores.preferences.create_empty(booking.id, INSTRUCTOR_ID, FIXED_NOW)

        assert container.preferences.resolve_final_selection(booking.id) is None
        assert not container.preferences.both_submitted(booking.id)
