# Validation module - corridor sampling and certification minimums
from .corridor import corridor_points, distance_miles, initial_bearing, interpolate, point_label
from .minimums import (
    CERTIFICATION_MINIMUMS,
    CertificationLevel,
    CertificationMinimums,
    get_minimums,
    parse_level,
)
from .validator import WeatherValidator, check_minimums, crosswind_component

__all__ = [
    "corridor_points",
    "distance_miles",
    "initial_bearing",
    "interpolate",
    "point_label",
    "CERTIFICATION_MINIMUMS",
    "CertificationLevel",
    "CertificationMinimums",
    "get_minimums",
    "parse_level",
    "WeatherValidator",
    "check_minimums",
    "crosswind_component",
]
