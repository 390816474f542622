# app/store/sql.py
"""
PostgreSQL stores.

Raw SQL through SQLAlchemy text(), one session_scope per operation so
every call commits or rolls back on its own. Tables live in
app/db/schema.sql.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..audit.models import AuditEvent
from ..availability.models import AvailabilityOverride, AvailabilityPattern
from ..db.engine import session_scope
from ..scheduling.models import Booking, BookingStatus, PreferenceRanking, RescheduleOption
from ..validation.minimums import CertificationLevel
from ..weather.models import Coordinate, Route, WeatherObservation
from .base import AuditStore, AvailabilityStore, BookingStore, PreferenceStore, RescheduleOptionStore

SessionFactory = Callable[[], Session]

BOOKING_COLUMNS = """
    id, student_id, instructor_id, departure_airport, arrival_airport,
    departure_lat, departure_lon, arrival_lat, arrival_lon,
    scheduled_time, certification_level, status, duration_minutes
"""

OPTION_COLUMNS = """
    id, booking_id, suggested_time, confidence, score, weather,
    weather_valid, availability_valid, reason, created_at
"""

RANKING_COLUMNS = """
    booking_id, user_id, option_1_id, option_2_id, option_3_id,
    unavailable_option_ids, deadline, submitted_at, created_at
"""


def _json(value: Any) -> Any:
    # psycopg2 decodes JSONB already; other drivers may hand back a string
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_booking(row: Mapping[str, Any]) -> Booking:
    return Booking(
        id=row["id"],
        student_id=row["student_id"],
        instructor_id=row["instructor_id"],
        route=Route(
            departure=Coordinate(row["departure_lat"], row["departure_lon"]),
            arrival=Coordinate(row["arrival_lat"], row["arrival_lon"]),
            departure_id=row["departure_airport"],
            arrival_id=row["arrival_airport"],
        ),
        scheduled_time=row["scheduled_time"],
        certification_level=CertificationLevel(row["certification_level"]),
        status=BookingStatus(row["status"]),
        duration_minutes=row["duration_minutes"],
    )


def _row_to_option(row: Mapping[str, Any]) -> RescheduleOption:
    return RescheduleOption(
        id=row["id"],
        booking_id=row["booking_id"],
        suggested_time=row["suggested_time"],
        confidence=row["confidence"],
        score=row["score"],
        weather=[WeatherObservation.from_dict(o) for o in _json(row["weather"]) or []],
        weather_valid=row["weather_valid"],
        availability_valid=row["availability_valid"],
        reason=row["reason"],
        created_at=row["created_at"],
    )


def _row_to_ranking(row: Mapping[str, Any]) -> PreferenceRanking:
    option_ids = [
        option_id
        for option_id in (row["option_1_id"], row["option_2_id"], row["option_3_id"])
        if option_id
    ]
    return PreferenceRanking(
        booking_id=row["booking_id"],
        user_id=row["user_id"],
        deadline=row["deadline"],
        option_ids=option_ids,
        unavailable_option_ids=list(_json(row["unavailable_option_ids"]) or []),
        submitted_at=row["submitted_at"],
        created_at=row["created_at"],
    )


class _SqlStore:

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory

    def _scope(self):
        return session_scope(self.session_factory)


class SqlBookingStore(_SqlStore, BookingStore):

    def add(self, booking: Booking) -> Booking:
        route = booking.route
        with self._scope() as session:
            session.execute(
                text(f"""
                    INSERT INTO bookings ({BOOKING_COLUMNS})
                    VALUES (
                        :id, :student_id, :instructor_id, :departure_airport, :arrival_airport,
                        :departure_lat, :departure_lon, :arrival_lat, :arrival_lon,
                        :scheduled_time, :certification_level, :status, :duration_minutes
                    )
                """),
                {
                    "id": booking.id,
                    "student_id": booking.student_id,
                    "instructor_id": booking.instructor_id,
                    "departure_airport": route.departure_id,
                    "arrival_airport": route.arrival_id,
                    "departure_lat": route.departure.latitude,
                    "departure_lon": route.departure.longitude,
                    "arrival_lat": route.arrival.latitude,
                    "arrival_lon": route.arrival.longitude,
                    "scheduled_time": booking.scheduled_time,
                    "certification_level": booking.certification_level.value,
                    "status": booking.status.value,
                    "duration_minutes": booking.duration_minutes,
                },
            )
        return booking

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._scope() as session:
            row = session.execute(
                text(f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE id = :id"),
                {"id": booking_id},
            ).mappings().fetchone()
        return _row_to_booking(row) if row else None

    def list_in_window(
        self,
        statuses: Iterable[BookingStatus],
        start: datetime,
        end: datetime,
    ) -> List[Booking]:
        status_values = [s.value for s in statuses]
        if not status_values:
            return []
        with self._scope() as session:
            rows = session.execute(
                text(f"""
                    SELECT {BOOKING_COLUMNS} FROM bookings
                    WHERE status = ANY(:statuses)
                      AND scheduled_time >= :start
                      AND scheduled_time <= :end
                    ORDER BY scheduled_time ASC
                """),
                {"statuses": status_values, "start": start, "end": end},
            ).mappings().fetchall()
        return [_row_to_booking(row) for row in rows]

    def list_by_status(self, status: BookingStatus) -> List[Booking]:
        with self._scope() as session:
            rows = session.execute(
                text(f"""
                    SELECT {BOOKING_COLUMNS} FROM bookings
                    WHERE status = :status
                    ORDER BY scheduled_time ASC
                """),
                {"status": status.value},
            ).mappings().fetchall()
        return [_row_to_booking(row) for row in rows]

    def update_status(self, booking_id: str, status: BookingStatus) -> None:
        with self._scope() as session:
            session.execute(
                text("UPDATE bookings SET status = :status, updated_at = NOW() WHERE id = :id"),
                {"id": booking_id, "status": status.value},
            )

    def update_schedule(self, booking_id: str, scheduled_time: datetime) -> None:
        with self._scope() as session:
            session.execute(
                text("""
                    UPDATE bookings SET scheduled_time = :scheduled_time, updated_at = NOW()
                    WHERE id = :id
                """),
                {"id": booking_id, "scheduled_time": scheduled_time},
            )


class SqlRescheduleOptionStore(_SqlStore, RescheduleOptionStore):

    def replace_for_booking(self, booking_id: str, options: List[RescheduleOption]) -> None:
        # Delete and insert in one transaction
        with self._scope() as session:
            session.execute(
                text("DELETE FROM reschedule_options WHERE booking_id = :booking_id"),
                {"booking_id": booking_id},
            )
            for option in options:
                session.execute(
                    text(f"""
                        INSERT INTO reschedule_options ({OPTION_COLUMNS})
                        VALUES (
                            :id, :booking_id, :suggested_time, :confidence, :score,
                            CAST(:weather AS jsonb), :weather_valid, :availability_valid,
                            :reason, :created_at
                        )
                    """),
                    {
                        "id": option.id,
                        "booking_id": booking_id,
                        "suggested_time": option.suggested_time,
                        "confidence": option.confidence,
                        "score": option.score,
                        "weather": json.dumps([o.to_dict() for o in option.weather]),
                        "weather_valid": option.weather_valid,
                        "availability_valid": option.availability_valid,
                        "reason": option.reason,
                        "created_at": option.created_at,
                    },
                )

    def list_for_booking(self, booking_id: str) -> List[RescheduleOption]:
        with self._scope() as session:
            rows = session.execute(
                text(f"""
                    SELECT {OPTION_COLUMNS} FROM reschedule_options
                    WHERE booking_id = :booking_id
                    ORDER BY score DESC, suggested_time ASC
                """),
                {"booking_id": booking_id},
            ).mappings().fetchall()
        return [_row_to_option(row) for row in rows]

    def get(self, option_id: str) -> Optional[RescheduleOption]:
        with self._scope() as session:
            row = session.execute(
                text(f"SELECT {OPTION_COLUMNS} FROM reschedule_options WHERE id = :id"),
                {"id": option_id},
            ).mappings().fetchone()
        return _row_to_option(row) if row else None


class SqlPreferenceStore(_SqlStore, PreferenceStore):

    def create_empty(self, booking_id: str, user_id: str, deadline: datetime) -> bool:
        with self._scope() as session:
            result = session.execute(
                text("""
                    INSERT INTO preference_rankings (booking_id, user_id, deadline, created_at)
                    VALUES (:booking_id, :user_id, :deadline, :created_at)
                    ON CONFLICT (booking_id, user_id) DO NOTHING
                """),
                {
                    "booking_id": booking_id,
                    "user_id": user_id,
                    "deadline": deadline,
                    "created_at": datetime.now(timezone.utc),
                },
            )
            return result.rowcount == 1

    def get(self, booking_id: str, user_id: str) -> Optional[PreferenceRanking]:
        with self._scope() as session:
            row = session.execute(
                text(f"""
                    SELECT {RANKING_COLUMNS} FROM preference_rankings
                    WHERE booking_id = :booking_id AND user_id = :user_id
                """),
                {"booking_id": booking_id, "user_id": user_id},
            ).mappings().fetchone()
        return _row_to_ranking(row) if row else None

    def list_for_booking(self, booking_id: str) -> List[PreferenceRanking]:
        with self._scope() as session:
            rows = session.execute(
                text(f"""
                    SELECT {RANKING_COLUMNS} FROM preference_rankings
                    WHERE booking_id = :booking_id
                    ORDER BY created_at ASC
                """),
                {"booking_id": booking_id},
            ).mappings().fetchall()
        return [_row_to_ranking(row) for row in rows]

    def save_submission(self, ranking: PreferenceRanking) -> PreferenceRanking:
        # Single upsert: a concurrent resubmission overwrites, never duplicates
        with self._scope() as session:
            session.execute(
                text(f"""
                    INSERT INTO preference_rankings ({RANKING_COLUMNS})
                    VALUES (
                        :booking_id, :user_id, :option_1_id, :option_2_id, :option_3_id,
                        CAST(:unavailable AS jsonb), :deadline, :submitted_at, :created_at
                    )
                    ON CONFLICT (booking_id, user_id) DO UPDATE SET
                        option_1_id = EXCLUDED.option_1_id,
                        option_2_id = EXCLUDED.option_2_id,
                        option_3_id = EXCLUDED.option_3_id,
                        unavailable_option_ids = EXCLUDED.unavailable_option_ids,
                        submitted_at = EXCLUDED.submitted_at
                """),
                {
                    "booking_id": ranking.booking_id,
                    "user_id": ranking.user_id,
                    "option_1_id": ranking.option_1_id,
                    "option_2_id": ranking.option_2_id,
                    "option_3_id": ranking.option_3_id,
                    "unavailable": json.dumps(list(ranking.unavailable_option_ids)),
                    "deadline": ranking.deadline,
                    "submitted_at": ranking.submitted_at,
                    "created_at": ranking.created_at,
                },
            )
        return ranking

    def delete_for_booking(self, booking_id: str) -> int:
        with self._scope() as session:
            result = session.execute(
                text("DELETE FROM preference_rankings WHERE booking_id = :booking_id"),
                {"booking_id": booking_id},
            )
            return result.rowcount


class SqlAvailabilityStore(_SqlStore, AvailabilityStore):

    def list_patterns(self, user_id: str) -> List[AvailabilityPattern]:
        with self._scope() as session:
            rows = session.execute(
                text("""
                    SELECT id, user_id, day_of_week, start_time, end_time, is_active
                    FROM availability_patterns
                    WHERE user_id = :user_id
                    ORDER BY day_of_week, start_time
                """),
                {"user_id": user_id},
            ).mappings().fetchall()
        return [
            AvailabilityPattern(
                id=row["id"],
                user_id=row["user_id"],
                day_of_week=row["day_of_week"],
                start_time=row["start_time"],
                end_time=row["end_time"],
                is_active=row["is_active"],
            )
            for row in rows
        ]

    def list_overrides(self, user_id: str, start_date: date, end_date: date) -> List[AvailabilityOverride]:
        with self._scope() as session:
            rows = session.execute(
                text("""
                    SELECT id, user_id, override_date, start_time, end_time,
                           is_blocked, reason, created_at
                    FROM availability_overrides
                    WHERE user_id = :user_id
                      AND override_date >= :start_date
                      AND override_date <= :end_date
                    ORDER BY override_date, start_time NULLS FIRST
                """),
                {"user_id": user_id, "start_date": start_date, "end_date": end_date},
            ).mappings().fetchall()
        return [
            AvailabilityOverride(
                id=row["id"],
                user_id=row["user_id"],
                override_date=row["override_date"],
                start_time=row["start_time"],
                end_time=row["end_time"],
                is_blocked=row["is_blocked"],
                reason=row["reason"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def add_pattern(self, pattern: AvailabilityPattern) -> AvailabilityPattern:
        with self._scope() as session:
            session.execute(
                text("""
                    INSERT INTO availability_patterns
                        (id, user_id, day_of_week, start_time, end_time, is_active)
                    VALUES (:id, :user_id, :day_of_week, :start_time, :end_time, :is_active)
                """),
                {
                    "id": pattern.id,
                    "user_id": pattern.user_id,
                    "day_of_week": pattern.day_of_week,
                    "start_time": pattern.start_time,
                    "end_time": pattern.end_time,
                    "is_active": pattern.is_active,
                },
            )
        return pattern

    def add_override(self, override: AvailabilityOverride) -> AvailabilityOverride:
        with self._scope() as session:
            session.execute(
                text("""
                    INSERT INTO availability_overrides
                        (id, user_id, override_date, start_time, end_time, is_blocked, reason, created_at)
                    VALUES
                        (:id, :user_id, :override_date, :start_time, :end_time, :is_blocked, :reason, :created_at)
                """),
                {
                    "id": override.id,
                    "user_id": override.user_id,
                    "override_date": override.override_date,
                    "start_time": override.start_time,
                    "end_time": override.end_time,
                    "is_blocked": override.is_blocked,
                    "reason": override.reason,
                    "created_at": override.created_at,
                },
            )
        return override


class SqlAuditStore(_SqlStore, AuditStore):

    def append(self, event: AuditEvent) -> None:
        with self._scope() as session:
            session.execute(
                text("""
                    INSERT INTO audit_log (id, event_type, entity_type, entity_id, actor, data, created_at)
                    VALUES (:id, :event_type, :entity_type, :entity_id, :actor, CAST(:data AS jsonb), :created_at)
                """),
                {
                    "id": event.id,
                    "event_type": event.event_type,
                    "entity_type": event.entity_type,
                    "entity_id": event.entity_id,
                    "actor": event.actor,
                    "data": json.dumps(event.data, default=str),
                    "created_at": event.created_at,
                },
            )

    def list_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        with self._scope() as session:
            rows = session.execute(
                text("""
                    SELECT id, event_type, entity_type, entity_id, actor, data, created_at
                    FROM audit_log
                    WHERE entity_type = :entity_type AND entity_id = :entity_id
                    ORDER BY created_at ASC
                """),
                {"entity_type": entity_type, "entity_id": entity_id},
            ).mappings().fetchall()
        return [
            AuditEvent(
                id=row["id"],
                event_type=row["event_type"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                actor=row["actor"],
                data=_json(row["data"]) or {},
                created_at=row["created_at"],
            )
            for row in rows
        ]
