# app/validation/minimums.py
"""
Weather minimums per certification level.

Static table; never mutated at runtime. Unknown levels fall back to the
most restrictive entry (student pilot).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from ..weather.models import ConditionTag


class CertificationLevel(Enum):
    STUDENT_PILOT = "STUDENT_PILOT"
    PRIVATE_PILOT = "PRIVATE_PILOT"
    INSTRUMENT_RATED = "INSTRUMENT_RATED"


@dataclass(frozen=True)
class CertificationMinimums:
    min_visibility_miles: float
    max_wind_speed_kt: float
    max_crosswind_kt: Optional[float]
    min_ceiling_feet: Optional[int]
    allowed_conditions: FrozenSet[ConditionTag]
    prohibited_conditions: FrozenSet[ConditionTag]


CERTIFICATION_MINIMUMS: Dict[CertificationLevel, CertificationMinimums] = {
    CertificationLevel.STUDENT_PILOT: CertificationMinimums(
        min_visibility_miles=5,
        max_wind_speed_kt=10,
        max_crosswind_kt=None,
        min_ceiling_feet=None,
        allowed_conditions=frozenset({ConditionTag.CLEAR}),
        prohibited_conditions=frozenset({
            ConditionTag.RAIN,
            ConditionTag.SNOW,
            ConditionTag.FOG,
            ConditionTag.MIST,
            ConditionTag.HAZE,
            ConditionTag.THUNDERSTORM,
            ConditionTag.ICE,
        }),
    ),
    CertificationLevel.PRIVATE_PILOT: CertificationMinimums(
        min_visibility_miles=3,
        max_wind_speed_kt=15,
        max_crosswind_kt=10,
        min_ceiling_feet=1000,
        allowed_conditions=frozenset({ConditionTag.CLEAR, ConditionTag.CLOUDS, ConditionTag.RAIN}),
        prohibited_conditions=frozenset({
            ConditionTag.THUNDERSTORM,
            ConditionTag.ICE,
            ConditionTag.CONVECTIVE,
        }),
    ),
    CertificationLevel.INSTRUMENT_RATED: CertificationMinimums(
        min_visibility_miles=0,  # IMC acceptable
        max_wind_speed_kt=25,
        max_crosswind_kt=15,
        min_ceiling_feet=None,
        allowed_conditions=frozenset({
            ConditionTag.CLEAR,
            ConditionTag.CLOUDS,
            ConditionTag.RAIN,
            ConditionTag.SNOW,
            ConditionTag.FOG,
            ConditionTag.MIST,
            ConditionTag.HAZE,
        }),
        prohibited_conditions=frozenset({
            ConditionTag.THUNDERSTORM,
            ConditionTag.ICE,
            ConditionTag.CONVECTIVE,
        }),
    ),
}


def parse_level(level: Union[str, CertificationLevel, None]) -> CertificationLevel:
    """Coerce a stored level; anything unrecognized becomes STUDENT_PILOT."""
    if isinstance(level, CertificationLevel):
        return level
    try:
        return CertificationLevel(str(level).upper())
    except ValueError:
        return CertificationLevel.STUDENT_PILOT


def get_minimums(
    level: Union[str, CertificationLevel, None],
    table: Optional[Dict[CertificationLevel, CertificationMinimums]] = None,
) -> CertificationMinimums:
    table = table or CERTIFICATION_MINIMUMS
    return table.get(parse_level(level), table[CertificationLevel.STUDENT_PILOT])
