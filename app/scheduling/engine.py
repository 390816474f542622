# app/scheduling/engine.py
"""
Reschedule option generation.

A fixed, linear pipeline over an immutable PipelineState:

    generate_candidates -> filter_by_weather -> filter_by_availability -> rank

Each stage returns a new state. Zero ranked options raises NoCandidateSlot;
an empty result is never returned as success.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from ..availability.service import AvailabilityService
from ..errors import NoCandidateSlot
from ..logging import get_scheduling_logger
from ..validation.validator import WeatherValidator
from ..weather.models import WeatherObservation
from .models import Booking, CandidateSlot, RescheduleOption

logger = get_scheduling_logger("engine")

DEFAULT_SLOT_HOURS = (8, 10, 12, 14, 16, 18)
DEFAULT_HORIZON_DAYS = 7
DEFAULT_MAX_OPTIONS = 3

# Each point of weather confidence is worth ten proximity points
CONFIDENCE_WEIGHT = 10


@dataclass(frozen=True)
class ScoredSlot:
    slot: CandidateSlot
    observations: Tuple[WeatherObservation, ...] = ()
    confidence: int = 0
    score: float = 0.0


@dataclass(frozen=True)
class PipelineState:
    booking: Booking
    now: datetime
    candidates: Tuple[CandidateSlot, ...] = ()
    weather_valid: Tuple[ScoredSlot, ...] = ()
    available: Tuple[ScoredSlot, ...] = ()
    ranked: Tuple[ScoredSlot, ...] = ()


def proximity_score(slot_time: datetime, original: datetime) -> float:
    """100 minus the distance in hours from the original time, floored at 0."""
    hours = abs((slot_time - original).total_seconds()) / 3600
    return max(0.0, 100.0 - hours)


def _describe(slot_time: datetime, original: datetime) -> str:
    hours = (slot_time - original).total_seconds() / 3600
    direction = "after" if hours > 0 else "before"
    return f"{abs(hours):.0f}h {direction} the original time"


class RescheduleEngine:
    """
    Produces up to max_options ranked replacement slots for a booking.

    Usage:
        engine = RescheduleEngine(validator, availability)
        options = engine.generate_options(booking)
    """

    def __init__(
        self,
        validator: WeatherValidator,
        availability: AvailabilityService,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        slot_hours: Sequence[int] = DEFAULT_SLOT_HOURS,
        timezone_name: str = "UTC",
        max_options: int = DEFAULT_MAX_OPTIONS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.validator = validator
        self.availability = availability
        self.horizon = timedelta(days=horizon_days)
        self.slot_hours = tuple(slot_hours)
        self.tz = ZoneInfo(timezone_name)
        self.max_options = max_options
        self.clock = clock
        self.stages: List[Callable[[PipelineState], PipelineState]] = [
            self.generate_candidates,
            self.filter_by_weather,
            self.filter_by_availability,
            self.rank,
        ]

    def generate_options(self, booking: Booking, now: Optional[datetime] = None) -> List[RescheduleOption]:
        """
        Run the pipeline for a booking.

        Returns:
            Unsaved RescheduleOption list, best first, at most max_options

        Raises:
            NoCandidateSlot: No slot survived every stage
        """
        state = PipelineState(booking=booking, now=now or self.clock())
        for stage in self.stages:
            state = stage(state)

        if not state.ranked:
            logger.warning(
                "no_candidate_slot",
                booking_id=booking.id,
                candidates=len(state.candidates),
                weather_valid=len(state.weather_valid),
                available=len(state.available),
            )
            raise NoCandidateSlot(
                f"No valid slot in the {self.horizon.days}-day horizon for booking {booking.id}"
            )

        options = [
            RescheduleOption(
                booking_id=booking.id,
                suggested_time=scored.slot.slot_time,
                confidence=scored.confidence,
                score=scored.score,
                weather=list(scored.observations),
                weather_valid=True,
                availability_valid=True,
                reason=scored.slot.reason,
            )
            for scored in state.ranked
        ]
        logger.info(
            "options_generated",
            booking_id=booking.id,
            candidates=len(state.candidates),
            weather_valid=len(state.weather_valid),
            available=len(state.available),
            options=len(options),
        )
        return options

    def _local_dates(self, start: datetime, end: datetime) -> List[date]:
        first = start.astimezone(self.tz).date()
        last = end.astimezone(self.tz).date()
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]

    def generate_candidates(self, state: PipelineState) -> PipelineState:
        original = state.booking.scheduled_time
        start = max(state.now, original - self.horizon)
        end = original + self.horizon

        candidates = []
        for day in self._local_dates(start, end):
            for hour in self.slot_hours:
                slot_time = datetime.combine(day, time(hour), tzinfo=self.tz).astimezone(timezone.utc)
                if slot_time <= state.now or slot_time == original:
                    continue
                if not start <= slot_time <= end:
                    continue
                candidates.append(CandidateSlot(
                    slot_time=slot_time,
                    proximity_score=proximity_score(slot_time, original),
                    reason=_describe(slot_time, original),
                ))
        return replace(state, candidates=tuple(candidates))

    def filter_by_weather(self, state: PipelineState) -> PipelineState:
        booking = state.booking
        valid = []
        for candidate in state.candidates:
            verdict = self.validator.validate_route(
                booking.route, booking.certification_level, at=candidate.slot_time
            )
            if not verdict.is_valid:
                continue
            valid.append(ScoredSlot(
                slot=candidate,
                observations=tuple(verdict.observations),
                confidence=verdict.confidence,
            ))
        return replace(state, weather_valid=tuple(valid))

    def filter_by_availability(self, state: PipelineState) -> PipelineState:
        participants = state.booking.participant_ids
        available = tuple(
            scored for scored in state.weather_valid
            if self.availability.first_unavailable(participants, scored.slot.slot_time) is None
        )
        return replace(state, available=available)

    def rank(self, state: PipelineState) -> PipelineState:
        scored = [
            replace(s, score=s.slot.proximity_score + s.confidence * CONFIDENCE_WEIGHT)
            for s in state.available
        ]
        scored.sort(key=lambda s: (-s.score, s.slot.slot_time))
        return replace(state, ranked=tuple(scored[: self.max_options]))
