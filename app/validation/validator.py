# app/validation/validator.py
"""
Route weather validation against certification minimums.

A route is valid only if every sampled corridor point is violation-free.
If any point cannot be fetched the verdict is invalid with confidence 0:
a failed lookup is treated as unsafe, never skipped.
"""

import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

from ..logging import get_logger
from ..weather.gateway import WeatherGateway
from ..weather.models import ConditionTag, Route, ValidationVerdict, WeatherObservation
from .corridor import DEFAULT_SAMPLES, corridor_points, point_label
from .minimums import (
    CERTIFICATION_MINIMUMS,
    CertificationLevel,
    CertificationMinimums,
    get_minimums,
)

logger = get_logger(__name__)

# Observations that were not cross-validated count as fully confident
UNVALIDATED_CONFIDENCE = 100


def _fmt(value: float) -> str:
    return f"{value:.1f}".rstrip("0").rstrip(".") if value != int(value) else str(int(value))


def crosswind_component(observation: WeatherObservation, heading: Optional[float]) -> Optional[float]:
    """
    Crosswind in knots.

    Reported crosswind wins; otherwise |wind * sin(wind_dir - heading)|.
    Without a heading the component cannot be derived.
    """
    if observation.crosswind_kt is not None:
        return abs(observation.crosswind_kt)
    if heading is None:
        return None
    angle = math.radians(observation.wind_direction_deg - heading)
    return abs(observation.wind_speed_kt * math.sin(angle))


def check_minimums(
    observation: WeatherObservation,
    minimums: CertificationMinimums,
    label: str,
    heading: Optional[float] = None,
) -> List[str]:
    """Violations for one observation, in a fixed order."""
    violations = []

    if observation.visibility_miles < minimums.min_visibility_miles:
        violations.append(
            f"{label}: Visibility {_fmt(observation.visibility_miles)} mi < "
            f"{_fmt(minimums.min_visibility_miles)} mi minimum"
        )

    if observation.wind_speed_kt > minimums.max_wind_speed_kt:
        violations.append(
            f"{label}: Wind speed {observation.wind_speed_kt:.1f} kt > "
            f"{_fmt(minimums.max_wind_speed_kt)} kt maximum"
        )

    if minimums.max_crosswind_kt is not None:
        crosswind = crosswind_component(observation, heading)
        if crosswind is not None and crosswind > minimums.max_crosswind_kt:
            violations.append(
                f"{label}: Crosswind {crosswind:.1f} kt > "
                f"{_fmt(minimums.max_crosswind_kt)} kt maximum"
            )

    # ceiling_feet None with cloud data reported is a clear sky
    if minimums.min_ceiling_feet is not None:
        if not observation.ceiling_reported:
            violations.append(
                f"{label}: Cloud ceiling unknown, {minimums.min_ceiling_feet} ft minimum"
            )
        elif observation.ceiling_feet is not None and observation.ceiling_feet < minimums.min_ceiling_feet:
            violations.append(
                f"{label}: Cloud ceiling {observation.ceiling_feet} ft < "
                f"{minimums.min_ceiling_feet} ft minimum"
            )

    for tag in ConditionTag:
        if tag in minimums.prohibited_conditions and observation.has_condition(tag):
            violations.append(f"{label}: Prohibited condition detected: {tag.value}")

    if observation.has_condition(ConditionTag.SEVERE):
        violations.append(f"{label}: Severe weather conditions detected")

    return violations


class WeatherValidator:
    """
    Checks routes against certification minimums.

    Usage:
        validator = WeatherValidator(gateway)
        verdict = validator.validate_route(route, CertificationLevel.PRIVATE_PILOT)
    """

    def __init__(
        self,
        gateway: WeatherGateway,
        samples: int = DEFAULT_SAMPLES,
        cross_validate: bool = True,
        minimums: Optional[Dict[CertificationLevel, CertificationMinimums]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.gateway = gateway
        self.samples = samples
        self.cross_validate = cross_validate
        self.minimums = minimums or CERTIFICATION_MINIMUMS
        self.clock = clock

    def get_minimums(self, level: Union[str, CertificationLevel, None]) -> CertificationMinimums:
        return get_minimums(level, self.minimums)

    def _fetch(self, point) -> WeatherObservation:
        if self.cross_validate:
            return self.gateway.get_observation_with_cross_validation(point)
        return self.gateway.get_observation(point)

    def validate_route(
        self,
        route: Route,
        level: Union[str, CertificationLevel, None],
        at: Optional[datetime] = None,
    ) -> ValidationVerdict:
        """
        Validate current weather along the route.

        Args:
            route: Departure/arrival route
            level: Certification level of the student
            at: Flight time the check is for (logged only; providers
                report current conditions)

        Returns:
            ValidationVerdict; invalid with confidence 0 if any point failed
        """
        minimums = self.get_minimums(level)
        points = corridor_points(route, self.samples)
        heading = route.heading()
        checked_at = self.clock()

        observations = []
        try:
            for point in points:
                observations.append(self._fetch(point))
        except Exception as e:
            logger.warning(
                "weather_check_failed",
                departure=route.departure_id,
                arrival=route.arrival_id,
                flight_time=at.isoformat() if at else None,
                error=str(e),
            )
            return ValidationVerdict(
                is_valid=False,
                violations=[f"Weather check failed: {e}"],
                confidence=0,
                observations=[],
                checked_at=checked_at,
            )

        violations = []
        for index, observation in enumerate(observations):
            label = point_label(index, len(observations), route)
            violations.extend(check_minimums(observation, minimums, label, heading))

        confidences = [
            obs.confidence if obs.confidence is not None else UNVALIDATED_CONFIDENCE
            for obs in observations
        ]
        confidence = round(sum(confidences) / len(confidences))

        verdict = ValidationVerdict(
            is_valid=not violations,
            violations=violations,
            confidence=confidence,
            observations=observations,
            checked_at=checked_at,
        )

        if verdict.is_valid:
            logger.info(
                "weather_validation_passed",
                departure=route.departure_id,
                arrival=route.arrival_id,
                confidence=confidence,
            )
        else:
            logger.warning(
                "weather_validation_failed",
                departure=route.departure_id,
                arrival=route.arrival_id,
                violation_count=len(violations),
            )
        return verdict
