# app/weather/models.py
"""
Normalized weather models.

Provider payloads are mapped into WeatherObservation by the adapters in
app.weather.providers; nothing downstream ever sees a raw vendor payload.

Units: visibility in statute miles, wind in knots, ceiling in feet AGL,
temperature in Fahrenheit, pressure in inches of mercury.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

# Cache key / equality granularity (~11 m)
COORDINATE_PRECISION = 4


class WeatherProviderName(Enum):
    OPENWEATHERMAP = "openweathermap"
    WEATHERAPI = "weatherapi"


class ConditionTag(Enum):
    CLEAR = "clear"
    CLOUDS = "clouds"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    MIST = "mist"
    HAZE = "haze"
    THUNDERSTORM = "thunderstorm"
    ICE = "ice"
    CONVECTIVE = "convective"
    SEVERE = "severe"


@dataclass(frozen=True, eq=False)
class Coordinate:
    """Latitude/longitude pair compared at cache-key granularity."""
    latitude: float
    longitude: float

    def rounded(self) -> Tuple[float, float]:
        return (
            round(self.latitude, COORDINATE_PRECISION),
            round(self.longitude, COORDINATE_PRECISION),
        )

    def cache_key(self) -> str:
        lat, lon = self.rounded()
        return f"{lat:.{COORDINATE_PRECISION}f},{lon:.{COORDINATE_PRECISION}f}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        return self.rounded() == other.rounded()

    def __hash__(self) -> int:
        return hash(self.rounded())

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Route:
    """Straight-line route between two coordinates."""
    departure: Coordinate
    arrival: Coordinate
    departure_id: Optional[str] = None  # e.g. KBJC
    arrival_id: Optional[str] = None

    def heading(self) -> float:
        """Initial true course from departure to arrival, degrees 0-360."""
        lat1 = math.radians(self.departure.latitude)
        lat2 = math.radians(self.arrival.latitude)
        d_lon = math.radians(self.arrival.longitude - self.departure.longitude)
        x = math.sin(d_lon) * math.cos(lat2)
        y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
        return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "departure": self.departure.to_dict(),
            "arrival": self.arrival.to_dict(),
            "departure_id": self.departure_id,
            "arrival_id": self.arrival_id,
        }


@dataclass(frozen=True)
class WeatherObservation:
    """Provider-normalized snapshot of current conditions at a coordinate."""
    location: Coordinate
    visibility_miles: float
    ceiling_feet: Optional[int]  # None = no ceiling (see ceiling_reported)
    wind_speed_kt: float
    wind_direction_deg: float
    temperature_f: float
    humidity_pct: float
    pressure_inhg: float
    conditions: Tuple[ConditionTag, ...]
    provider: WeatherProviderName
    captured_at: datetime
    crosswind_kt: Optional[float] = None
    condition_text: str = ""
    # Set only by cross-validation (0-100)
    confidence: Optional[int] = None
    # False when the provider sent no cloud data; ceiling_feet is then unknown
    ceiling_reported: bool = True

    def has_condition(self, tag: ConditionTag) -> bool:
        return tag in self.conditions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location.to_dict(),
            "visibility_miles": self.visibility_miles,
            "ceiling_feet": self.ceiling_feet,
            "wind_speed_kt": round(self.wind_speed_kt, 1),
            "wind_direction_deg": self.wind_direction_deg,
            "crosswind_kt": self.crosswind_kt,
            "temperature_f": self.temperature_f,
            "humidity_pct": self.humidity_pct,
            "pressure_inhg": round(self.pressure_inhg, 2),
            "conditions": [c.value for c in self.conditions],
            "condition_text": self.condition_text,
            "provider": self.provider.value,
            "captured_at": self.captured_at.isoformat(),
            "confidence": self.confidence,
            "ceiling_reported": self.ceiling_reported,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherObservation":
        """Rebuild an observation stored with to_dict()."""
        location = data["location"]
        return cls(
            location=Coordinate(location["latitude"], location["longitude"]),
            visibility_miles=data["visibility_miles"],
            ceiling_feet=data.get("ceiling_feet"),
            wind_speed_kt=data["wind_speed_kt"],
            wind_direction_deg=data.get("wind_direction_deg", 0.0),
            temperature_f=data.get("temperature_f", 0.0),
            humidity_pct=data.get("humidity_pct", 0.0),
            pressure_inhg=data.get("pressure_inhg", 0.0),
            conditions=tuple(ConditionTag(c) for c in data.get("conditions", [])),
            provider=WeatherProviderName(data["provider"]),
            captured_at=datetime.fromisoformat(data["captured_at"]),
            crosswind_kt=data.get("crosswind_kt"),
            condition_text=data.get("condition_text", ""),
            confidence=data.get("confidence"),
            ceiling_reported=data.get("ceiling_reported", True),
        )


@dataclass
class ValidationVerdict:
    """Result of checking a route against certification minimums."""
    is_valid: bool
    violations: list = field(default_factory=list)
    confidence: int = 0
    observations: list = field(default_factory=list)
    checked_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "violations": list(self.violations),
            "confidence": self.confidence,
            "observations": [o.to_dict() for o in self.observations],
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }
