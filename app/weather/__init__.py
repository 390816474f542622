# Weather module - normalized observations, provider adapters, cache and gateway
from .models import (
    ConditionTag,
    Coordinate,
    Route,
    ValidationVerdict,
    WeatherObservation,
    WeatherProviderName,
)
from .cache import CacheSweeper, WeatherCache
from .providers import (
    OpenWeatherMapClient,
    WeatherApiClient,
    parse_openweathermap,
    parse_weatherapi,
)
from .gateway import RetryOptions, WeatherGateway, calculate_confidence

__all__ = [
    "ConditionTag",
    "Coordinate",
    "Route",
    "ValidationVerdict",
    "WeatherObservation",
    "WeatherProviderName",
    "CacheSweeper",
    "WeatherCache",
    "OpenWeatherMapClient",
    "WeatherApiClient",
    "parse_openweathermap",
    "parse_weatherapi",
    "RetryOptions",
    "WeatherGateway",
    "calculate_confidence",
]
