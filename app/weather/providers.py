# app/weather/providers.py
"""
Weather provider clients.

Sources:
- OpenWeatherMap (primary): {base}/weather?lat={lat}&lon={lon}&appid={key}&units=imperial
- WeatherAPI.com (secondary): {base}/current.json?key={key}&q={lat},{lon}

Each client fetches the raw payload and hands it to a pure adapter
(parse_openweathermap / parse_weatherapi) that returns a normalized
WeatherObservation. Raw payloads never leave this module.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import ProviderConfigurationError, ProviderPayloadError
from ..ingestion.http import DEFAULT_TIMEOUT, HttpClient
from .models import ConditionTag, Coordinate, WeatherObservation, WeatherProviderName

# Unit conversions
METERS_TO_MILES = 0.000621371
KM_TO_MILES = 0.621371
MPH_TO_KNOTS = 0.868976
HPA_TO_INHG = 0.02953

# OpenWeatherMap omits visibility at or above 10 km
DEFAULT_VISIBILITY_MILES = 10.0

OPENWEATHERMAP_MAIN_TAGS = {
    "clear": ConditionTag.CLEAR,
    "clouds": ConditionTag.CLOUDS,
    "rain": ConditionTag.RAIN,
    "drizzle": ConditionTag.RAIN,
    "snow": ConditionTag.SNOW,
    "fog": ConditionTag.FOG,
    "mist": ConditionTag.MIST,
    "haze": ConditionTag.HAZE,
    "smoke": ConditionTag.HAZE,
    "dust": ConditionTag.HAZE,
    "sand": ConditionTag.HAZE,
    "ash": ConditionTag.HAZE,
    "thunderstorm": ConditionTag.THUNDERSTORM,
    "squall": ConditionTag.SEVERE,
    "tornado": ConditionTag.SEVERE,
}

# WeatherAPI.com freezing drizzle/rain and ice pellet codes
WEATHERAPI_ICE_CODES = {1072, 1168, 1171, 1198, 1201, 1204, 1207, 1237, 1249, 1252, 1261, 1264}


def estimate_ceiling(cloud_cover: Optional[float]) -> Optional[int]:
    """
    Estimate ceiling (ft) from cloud cover percentage.

    Neither provider reports a cloud base, so denser cover maps to a lower
    ceiling. 0 % means no ceiling. Unknown cover also returns None; the
    adapters flag it with ceiling_reported=False so the validator fails it.
    """
    if not cloud_cover:
        return None
    if cloud_cover < 25:
        return 5000
    if cloud_cover < 50:
        return 3000
    if cloud_cover < 75:
        return 1500
    return 1000


def _dedupe(tags: List[ConditionTag]) -> Tuple[ConditionTag, ...]:
    seen = []
    for tag in tags:
        if tag not in seen:
            seen.append(tag)
    return tuple(seen)


def _openweathermap_conditions(weather: List[Dict[str, Any]]) -> Tuple[ConditionTag, ...]:
    tags = []
    for entry in weather:
        main = (entry.get("main") or "").lower()
        description = (entry.get("description") or "").lower()
        tag = OPENWEATHERMAP_MAIN_TAGS.get(main)
        if tag is not None:
            tags.append(tag)
        if "freezing" in description or "sleet" in description:
            tags.append(ConditionTag.ICE)
        if "extreme" in description or "severe" in description:
            tags.append(ConditionTag.SEVERE)
    return _dedupe(tags) or (ConditionTag.CLEAR,)


def _weatherapi_conditions(condition: Dict[str, Any]) -> Tuple[ConditionTag, ...]:
    code = condition.get("code") or 0
    text = (condition.get("text") or "").lower()

    # 1087 ("thundery outbreaks") sits inside the rain block; check it first
    if code == 1087 or code >= 1273:
        tags = [ConditionTag.THUNDERSTORM]
    elif code in WEATHERAPI_ICE_CODES:
        tags = [ConditionTag.ICE]
    elif code == 1000:
        tags = [ConditionTag.CLEAR]
    elif 1003 <= code <= 1009:
        tags = [ConditionTag.CLOUDS]
    elif code in (1030, 1135, 1147):
        tags = [ConditionTag.FOG]
    elif 1114 <= code <= 1117 or 1210 <= code <= 1225 or 1255 <= code <= 1258 or code == 1066:
        tags = [ConditionTag.SNOW]
    elif 1063 <= code <= 1087 or 1150 <= code <= 1201 or 1240 <= code <= 1246:
        tags = [ConditionTag.RAIN]
    else:
        tags = [ConditionTag.CLEAR]

    if "freezing" in text or "ice" in text or "sleet" in text:
        tags.append(ConditionTag.ICE)
    return _dedupe(tags)


def parse_openweathermap(
    payload: Dict[str, Any],
    coord: Coordinate,
    captured_at: Optional[datetime] = None,
) -> WeatherObservation:
    """
    Map an OpenWeatherMap /weather payload (units=imperial).

    Raises:
        ProviderPayloadError: "main" or "wind" block (or wind speed) missing
    """
    if not isinstance(payload, dict) or "main" not in payload or "wind" not in payload:
        raise ProviderPayloadError("OpenWeatherMap payload missing main/wind")

    main = payload["main"] or {}
    wind = payload["wind"] or {}
    if wind.get("speed") is None:
        raise ProviderPayloadError("OpenWeatherMap payload missing wind speed")
    cloud_cover = (payload.get("clouds") or {}).get("all")

    visibility_m = payload.get("visibility")
    if visibility_m is None:
        visibility_miles = DEFAULT_VISIBILITY_MILES
    else:
        visibility_miles = round(visibility_m * METERS_TO_MILES, 2)

    conditions = _openweathermap_conditions(payload.get("weather") or [])
    description = ", ".join(
        w.get("description", "") for w in payload.get("weather") or [] if w.get("description")
    )

    return WeatherObservation(
        location=coord,
        visibility_miles=visibility_miles,
        ceiling_feet=estimate_ceiling(cloud_cover),
        ceiling_reported=cloud_cover is not None,
        wind_speed_kt=wind["speed"] * MPH_TO_KNOTS,
        wind_direction_deg=wind.get("deg") or 0,
        temperature_f=main.get("temp") or 0,
        humidity_pct=main.get("humidity") or 0,
        pressure_inhg=(main.get("pressure") or 0) * HPA_TO_INHG,
        conditions=conditions,
        condition_text=description,
        provider=WeatherProviderName.OPENWEATHERMAP,
        captured_at=captured_at or datetime.now(timezone.utc),
    )


def parse_weatherapi(
    payload: Dict[str, Any],
    coord: Coordinate,
    captured_at: Optional[datetime] = None,
) -> WeatherObservation:
    """
    Map a WeatherAPI.com /current.json payload.

    Missing visibility is treated as 0 miles and missing cloud cover as an
    unknown ceiling, so a malformed payload can never look like clear
    weather.

    Raises:
        ProviderPayloadError: "current" block or wind speed missing
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("current"), dict):
        raise ProviderPayloadError("WeatherAPI payload missing current")

    current = payload["current"]
    condition = current.get("condition") or {}
    if current.get("wind_mph") is None:
        raise ProviderPayloadError("WeatherAPI payload missing wind_mph")

    if current.get("vis_miles") is not None:
        visibility_miles = float(current["vis_miles"])
    elif current.get("vis_km") is not None:
        visibility_miles = round(float(current["vis_km"]) * KM_TO_MILES, 2)
    else:
        visibility_miles = 0.0

    return WeatherObservation(
        location=coord,
        visibility_miles=visibility_miles,
        ceiling_feet=estimate_ceiling(current.get("cloud")),
        ceiling_reported=current.get("cloud") is not None,
        wind_speed_kt=float(current["wind_mph"]) * MPH_TO_KNOTS,
        wind_direction_deg=current.get("wind_degree") or 0,
        temperature_f=current.get("temp_f") or 0,
        humidity_pct=current.get("humidity") or 0,
        pressure_inhg=current.get("pressure_in") or 0,
        conditions=_weatherapi_conditions(condition),
        condition_text=condition.get("text") or "",
        provider=WeatherProviderName.WEATHERAPI,
        captured_at=captured_at or datetime.now(timezone.utc),
    )


class OpenWeatherMapClient:
    """Primary provider: OpenWeatherMap current weather."""

    name = WeatherProviderName.OPENWEATHERMAP

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.client = HttpClient(base_url=base_url, timeout=timeout, transport=transport)

    def fetch_raw(self, coord: Coordinate) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderConfigurationError("OpenWeatherMap API key not configured")
        return self.client.get_json(
            "/weather",
            params={
                "lat": coord.latitude,
                "lon": coord.longitude,
                "appid": self.api_key,
                "units": "imperial",
            },
        )

    def fetch(self, coord: Coordinate) -> WeatherObservation:
        return parse_openweathermap(self.fetch_raw(coord), coord)


class WeatherApiClient:
    """Secondary provider: WeatherAPI.com current conditions."""

    name = WeatherProviderName.WEATHERAPI

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.weatherapi.com/v1",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.client = HttpClient(base_url=base_url, timeout=timeout, transport=transport)

    def fetch_raw(self, coord: Coordinate) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderConfigurationError("WeatherAPI.com API key not configured")
        return self.client.get_json(
            "/current.json",
            params={
                "key": self.api_key,
                "q": f"{coord.latitude},{coord.longitude}",
            },
        )

    def fetch(self, coord: Coordinate) -> WeatherObservation:
        return parse_weatherapi(self.fetch_raw(coord), coord)
