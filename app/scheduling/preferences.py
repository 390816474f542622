# app/scheduling/preferences.py
"""
Preference capture and resolution.

Each participant has one ranking row per booking, created empty with a
shared deadline when options are generated. The final choice is the
instructor's highest-ranked option; the student's ranking is recorded but
never changes the outcome.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..errors import (
    BookingNotFound,
    DeadlinePassed,
    InvalidPreference,
    PreferenceNotFound,
)
from ..logging import get_scheduling_logger
from ..store.base import BookingStore, PreferenceStore, RescheduleOptionStore
from .deadline import calculate_deadline, is_deadline_passed
from .models import Booking, PreferenceRanking

logger = get_scheduling_logger("preferences")

MAX_RANKED_OPTIONS = 3


class PreferenceService:

    def __init__(
        self,
        preferences: PreferenceStore,
        options: RescheduleOptionStore,
        bookings: BookingStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.preferences = preferences
        self.options = options
        self.bookings = bookings
        self.clock = clock

    def _booking(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking not found: {booking_id}")
        return booking

    def create_rankings(self, booking: Booking, notified_at: Optional[datetime] = None) -> datetime:
        """
        Create empty rankings for student and instructor.

        Both rows get the same deadline. Existing rows are left untouched.

        Returns:
            The deadline
        """
        deadline = calculate_deadline(booking.scheduled_time, notified_at or self.clock())
        for user_id in booking.participant_ids:
            self.preferences.create_empty(booking.id, user_id, deadline)
        logger.info(
            "preference_rankings_created",
            booking_id=booking.id,
            deadline=deadline.isoformat(),
        )
        return deadline

    def submit_preference(
        self,
        booking_id: str,
        user_id: str,
        ranked_option_ids: List[str],
        unavailable_option_ids: Optional[List[str]] = None,
    ) -> PreferenceRanking:
        """
        Record a participant's ranking, overwriting any earlier submission.

        Raises:
            BookingNotFound: Unknown booking
            PreferenceNotFound: No ranking row for this user (options not generated)
            InvalidPreference: Not a participant, too many/duplicate/foreign options
            DeadlinePassed: Submitted after the deadline
        """
        booking = self._booking(booking_id)
        if user_id not in booking.participant_ids:
            raise InvalidPreference(f"User {user_id} is not a participant of booking {booking_id}")

        existing = self.preferences.get(booking_id, user_id)
        if existing is None:
            raise PreferenceNotFound(
                f"No preference ranking for booking {booking_id} and user {user_id}"
            )

        now = self.clock()
        if is_deadline_passed(existing.deadline, now):
            logger.warning(
                "preference_rejected_deadline",
                booking_id=booking_id,
                user_id=user_id,
                deadline=existing.deadline.isoformat(),
            )
            raise DeadlinePassed("Preference submission deadline has passed")

        unavailable = list(unavailable_option_ids or [])
        self._validate_options(booking_id, ranked_option_ids, unavailable)

        ranking = replace(
            existing,
            option_ids=list(ranked_option_ids),
            unavailable_option_ids=unavailable,
            submitted_at=now,
        )
        saved = self.preferences.save_submission(ranking)
        logger.info(
            "preference_submitted",
            booking_id=booking_id,
            user_id=user_id,
            ranked=len(ranked_option_ids),
        )
        return saved

    def _validate_options(self, booking_id: str, ranked: List[str], unavailable: List[str]) -> None:
        if len(ranked) > MAX_RANKED_OPTIONS:
            raise InvalidPreference(f"At most {MAX_RANKED_OPTIONS} options can be ranked")
        if len(set(ranked)) != len(ranked):
            raise InvalidPreference("Ranked options must be distinct")

        valid_ids = {o.id for o in self.options.list_for_booking(booking_id)}
        unknown = [oid for oid in [*ranked, *unavailable] if oid not in valid_ids]
        if unknown:
            raise InvalidPreference(f"Options do not belong to booking {booking_id}: {unknown}")

    def reset(self, booking_id: str) -> int:
        """Drop all rankings for a booking (its options are being replaced)."""
        return self.preferences.delete_for_booking(booking_id)

    def get_preferences(self, booking_id: str) -> List[PreferenceRanking]:
        return self.preferences.list_for_booking(booking_id)

    def both_submitted(self, booking_id: str) -> bool:
        rankings = self.preferences.list_for_booking(booking_id)
        return len(rankings) == 2 and all(r.is_submitted for r in rankings)

    def deadline_for(self, booking_id: str) -> Optional[datetime]:
        rankings = self.preferences.list_for_booking(booking_id)
        return rankings[0].deadline if rankings else None

    def resolve_final_selection(self, booking_id: str) -> Optional[str]:
        """
        The instructor's first ranked option, else second, else third.

        Returns None unless both rows exist and the instructor ranked
        something.
        """
        rankings = self.preferences.list_for_booking(booking_id)
        if len(rankings) != 2:
            return None

        booking = self._booking(booking_id)
        instructor = next((r for r in rankings if r.user_id == booking.instructor_id), None)
        if instructor is None:
            return None

        for option_id in (instructor.option_1_id, instructor.option_2_id, instructor.option_3_id):
            if option_id:
                logger.info("final_selection_resolved", booking_id=booking_id, option_id=option_id)
                return option_id
        return None
