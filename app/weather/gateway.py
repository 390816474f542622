# app/weather/gateway.py
"""
Weather provider gateway.

Single entry point for weather lookups:
- get_observation: cache -> primary (breaker + retry) -> secondary (breaker + retry)
- get_observation_with_cross_validation: both providers in parallel,
  confidence from their agreement

When neither provider answers a ProviderFailure is raised. Stale or
synthetic data is never substituted.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..errors import ProviderFailure
from ..logging import get_weather_logger
from ..resilience import CircuitBreaker, retry_with_jitter
from .cache import WeatherCache
from .models import Coordinate, WeatherObservation, WeatherProviderName

logger = get_weather_logger("gateway")

CROSS_NAMESPACE = "cross"

# Confidence when only one provider answered
SINGLE_PROVIDER_CONFIDENCE = 80

# Relative tolerances for provider agreement
VISIBILITY_TOLERANCE = 0.10
WIND_TOLERANCE = 0.15
TEMPERATURE_TOLERANCE = 0.05


class WeatherProvider(Protocol):
    name: WeatherProviderName

    def fetch(self, coord: Coordinate) -> WeatherObservation:
        ...


@dataclass
class RetryOptions:
    """Per-provider retry settings (jittered exponential backoff)."""
    max_retries: int = 2
    initial_delay: float = 0.5
    max_delay: float = 30.0
    sleep: Optional[Callable[[float], None]] = None


def _within(primary: float, secondary: float, tolerance: float) -> bool:
    return abs(primary - secondary) <= abs(primary) * tolerance


def calculate_confidence(observations: List[WeatherObservation]) -> int:
    """
    Confidence (0-100) from provider agreement.

    One observation gives 80. Two give the share of agreeing metrics:
    visibility within 10 %, wind speed within 15 %, temperature within 5 %,
    each relative to the first (primary) observation.
    """
    if not observations:
        return 0
    if len(observations) == 1:
        return SINGLE_PROVIDER_CONFIDENCE

    primary, secondary = observations[0], observations[1]
    checks = [
        _within(primary.visibility_miles, secondary.visibility_miles, VISIBILITY_TOLERANCE),
        _within(primary.wind_speed_kt, secondary.wind_speed_kt, WIND_TOLERANCE),
        _within(primary.temperature_f, secondary.temperature_f, TEMPERATURE_TOLERANCE),
    ]
    return round(sum(checks) / len(checks) * 100)


class WeatherGateway:
    """
    Cached, fault-tolerant access to the two weather providers.

    All collaborators are injected; app.container builds the production
    instance.
    """

    def __init__(
        self,
        primary: WeatherProvider,
        secondary: WeatherProvider,
        cache: WeatherCache,
        primary_breaker: Optional[CircuitBreaker] = None,
        secondary_breaker: Optional[CircuitBreaker] = None,
        retry_options: Optional[RetryOptions] = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.cache = cache
        self.primary_breaker = primary_breaker or CircuitBreaker(primary.name.value)
        self.secondary_breaker = secondary_breaker or CircuitBreaker(secondary.name.value)
        self.retry_options = retry_options or RetryOptions()

    def _fetch_with_retry(self, provider: WeatherProvider, coord: Coordinate) -> WeatherObservation:
        options = self.retry_options
        kwargs: Dict[str, Any] = {}
        if options.sleep is not None:
            kwargs["sleep"] = options.sleep
        return retry_with_jitter(
            lambda: provider.fetch(coord),
            max_retries=options.max_retries,
            initial_delay=options.initial_delay,
            max_delay=options.max_delay,
            **kwargs,
        )

    def _guarded_fetch(
        self,
        provider: WeatherProvider,
        breaker: CircuitBreaker,
        coord: Coordinate,
    ) -> WeatherObservation:
        return breaker.call(lambda: self._fetch_with_retry(provider, coord))

    def get_observation(self, coord: Coordinate) -> WeatherObservation:
        """
        Current weather at coord with primary/secondary failover.

        Raises:
            ProviderFailure: Both providers failed
        """
        cached = self.cache.get(coord)
        if cached is not None:
            logger.debug("weather_cache_hit", coord=coord.cache_key())
            return cached

        try:
            observation = self._guarded_fetch(self.primary, self.primary_breaker, coord)
        except Exception as primary_error:
            logger.warning(
                "primary_provider_failed",
                provider=self.primary.name.value,
                coord=coord.cache_key(),
                error=str(primary_error),
            )
            try:
                observation = self._guarded_fetch(self.secondary, self.secondary_breaker, coord)
            except Exception as secondary_error:
                logger.error(
                    "all_providers_failed",
                    coord=coord.cache_key(),
                    primary_error=str(primary_error),
                    secondary_error=str(secondary_error),
                )
                raise ProviderFailure(
                    "Weather service unavailable: both providers failed",
                    primary_error=primary_error,
                    secondary_error=secondary_error,
                ) from secondary_error

        self.cache.set(coord, observation)
        return observation

    def get_observation_with_cross_validation(self, coord: Coordinate) -> WeatherObservation:
        """
        Query both providers concurrently and attach an agreement confidence.

        The primary's observation is returned when it answered, else the
        secondary's. Each provider failure is tolerated on its own.

        Raises:
            ProviderFailure: Both providers failed
        """
        cached = self.cache.get(coord, namespace=CROSS_NAMESPACE)
        if cached is not None:
            logger.debug("weather_cache_hit", coord=coord.cache_key(), namespace=CROSS_NAMESPACE)
            return cached

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = {
                "primary": executor.submit(
                    self._guarded_fetch, self.primary, self.primary_breaker, coord
                ),
                "secondary": executor.submit(
                    self._guarded_fetch, self.secondary, self.secondary_breaker, coord
                ),
            }
            results: Dict[str, Optional[WeatherObservation]] = {}
            errors: Dict[str, BaseException] = {}
            for key, future in futures.items():
                try:
                    results[key] = future.result()
                except Exception as e:
                    logger.warning(
                        "cross_validation_provider_failed",
                        role=key,
                        coord=coord.cache_key(),
                        error=str(e),
                    )
                    results[key] = None
                    errors[key] = e

        observations = [obs for obs in (results["primary"], results["secondary"]) if obs is not None]
        if not observations:
            logger.error(
                "all_providers_failed",
                coord=coord.cache_key(),
                primary_error=str(errors.get("primary")),
                secondary_error=str(errors.get("secondary")),
            )
            raise ProviderFailure(
                "Weather service unavailable: both providers failed",
                primary_error=errors.get("primary"),
                secondary_error=errors.get("secondary"),
            )

        confidence = calculate_confidence(observations)
        observation = replace(observations[0], confidence=confidence)

        self.cache.set(coord, observations[0])
        self.cache.set(coord, observation, namespace=CROSS_NAMESPACE)
        logger.debug(
            "cross_validated",
            coord=coord.cache_key(),
            providers=len(observations),
            confidence=confidence,
        )
        return observation

    def breaker_states(self) -> List[Dict[str, Any]]:
        return [self.primary_breaker.snapshot(), self.secondary_breaker.snapshot()]
