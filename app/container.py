# app/container.py
"""
Wiring for the rescheduling pipeline.

build_container() assembles every component from Settings. Tests pass
their own providers, stores and clock; the API and the monitor CLI use
the get_container() singleton.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .audit.log import AuditLogger
from .availability.service import AvailabilityService
from .logging import get_logger
from .notifications.dispatcher import InMemorySink, NotificationDispatcher, NotificationSink
from .notifications.webhook import WebhookSink
from .resilience import CircuitBreaker
from .scheduling.conflicts import ConflictDetector
from .scheduling.engine import RescheduleEngine
from .scheduling.monitor import WeatherMonitor
from .scheduling.preferences import PreferenceService
from .scheduling.state_machine import BookingStateMachine
from .scheduling.workflow import RescheduleWorkflow
from .settings import Settings, settings as default_settings
from .store.base import AuditStore, AvailabilityStore, BookingStore, PreferenceStore, RescheduleOptionStore
from .validation.validator import WeatherValidator
from .weather.cache import CacheSweeper, WeatherCache
from .weather.gateway import RetryOptions, WeatherGateway, WeatherProvider
from .weather.providers import OpenWeatherMapClient, WeatherApiClient

logger = get_logger(__name__)


@dataclass
class Stores:
    bookings: BookingStore
    options: RescheduleOptionStore
    preferences: PreferenceStore
    availability: AvailabilityStore
    audit: AuditStore


def memory_stores() -> Stores:
    from .store.memory import (
        InMemoryAuditStore,
        InMemoryAvailabilityStore,
        InMemoryBookingStore,
        InMemoryPreferenceStore,
        InMemoryRescheduleOptionStore,
    )

    return Stores(
        bookings=InMemoryBookingStore(),
        options=InMemoryRescheduleOptionStore(),
        preferences=InMemoryPreferenceStore(),
        availability=InMemoryAvailabilityStore(),
        audit=InMemoryAuditStore(),
    )


def sql_stores(session_factory=None) -> Stores:
    from .store.sql import (
        SqlAuditStore,
        SqlAvailabilityStore,
        SqlBookingStore,
        SqlPreferenceStore,
        SqlRescheduleOptionStore,
    )

    return Stores(
        bookings=SqlBookingStore(session_factory),
        options=SqlRescheduleOptionStore(session_factory),
        preferences=SqlPreferenceStore(session_factory),
        availability=SqlAvailabilityStore(session_factory),
        audit=SqlAuditStore(session_factory),
    )


@dataclass
class Container:
    settings: Settings
    stores: Stores
    cache: WeatherCache
    sweeper: CacheSweeper
    gateway: WeatherGateway
    validator: WeatherValidator
    availability: AvailabilityService
    audit: AuditLogger
    state_machine: BookingStateMachine
    inbox: InMemorySink
    notifier: NotificationDispatcher
    engine: RescheduleEngine
    preferences: PreferenceService
    workflow: RescheduleWorkflow
    detector: ConflictDetector
    monitor: WeatherMonitor

    def close(self) -> None:
        self.sweeper.stop()
        for sink in self.notifier.sinks:
            close = getattr(sink, "close", None)
            if close is not None:
                close()


def build_container(
    config: Optional[Settings] = None,
    primary: Optional[WeatherProvider] = None,
    secondary: Optional[WeatherProvider] = None,
    stores: Optional[Stores] = None,
    clock: Optional[Callable[[], datetime]] = None,
    retry_options: Optional[RetryOptions] = None,
) -> Container:
    """
    Build the full component graph.

    Args:
        config: Settings (defaults to the global instance)
        primary/secondary: Weather providers (default: OpenWeatherMap, WeatherAPI.com)
        stores: Persistence (default: chosen by STORE_BACKEND)
        clock: Wall clock shared by every time-dependent component
        retry_options: Provider retry settings (default: from Settings)
    """
    config = config or default_settings
    clock = clock or (lambda: datetime.now(timezone.utc))

    if stores is None:
        stores = sql_stores() if config.store_backend == "sql" else memory_stores()

    primary = primary or OpenWeatherMapClient(
        config.openweathermap_api_key,
        base_url=config.openweathermap_base_url,
        timeout=config.weather_timeout_seconds,
    )
    secondary = secondary or WeatherApiClient(
        config.weatherapi_api_key,
        base_url=config.weatherapi_base_url,
        timeout=config.weather_timeout_seconds,
    )

    cache = WeatherCache(
        ttl_seconds=config.weather_cache_ttl_seconds,
        max_size=config.weather_cache_max_size,
    )
    gateway = WeatherGateway(
        primary,
        secondary,
        cache,
        primary_breaker=CircuitBreaker(
            primary.name.value,
            failure_threshold=config.breaker_failure_threshold,
            reset_timeout=config.breaker_reset_timeout_seconds,
        ),
        secondary_breaker=CircuitBreaker(
            secondary.name.value,
            failure_threshold=config.breaker_failure_threshold,
            reset_timeout=config.breaker_reset_timeout_seconds,
        ),
        retry_options=retry_options or RetryOptions(
            max_retries=config.retry_max_retries,
            initial_delay=config.retry_initial_delay_seconds,
            max_delay=config.retry_max_delay_seconds,
        ),
    )
    validator = WeatherValidator(
        gateway,
        samples=config.corridor_samples,
        cross_validate=config.cross_validate,
        clock=clock,
    )
    availability = AvailabilityService(stores.availability, timezone=config.schedule_timezone)
    audit = AuditLogger(stores.audit)
    state_machine = BookingStateMachine(stores.bookings, audit)

    inbox = InMemorySink()
    sinks: List[NotificationSink] = [inbox]
    if config.notification_webhook_urls:
        sinks.append(WebhookSink(config.notification_webhook_urls))
    notifier = NotificationDispatcher(sinks)

    engine = RescheduleEngine(
        validator,
        availability,
        horizon_days=config.reschedule_horizon_days,
        timezone_name=config.schedule_timezone,
        clock=clock,
    )
    preferences = PreferenceService(stores.preferences, stores.options, stores.bookings, clock=clock)
    workflow = RescheduleWorkflow(
        stores.bookings,
        stores.options,
        engine,
        preferences,
        availability,
        validator,
        state_machine,
        notifier,
        audit,
        clock=clock,
    )
    detector = ConflictDetector(stores.bookings, validator, state_machine, clock=clock)
    monitor = WeatherMonitor(
        detector,
        stores.bookings,
        workflow,
        notifier,
        audit,
        lookahead_hours=config.monitor_lookahead_hours,
        auto_reschedule_critical=config.auto_reschedule_critical,
        clock=clock,
    )

    logger.info(
        "container_built",
        store_backend=config.store_backend,
        primary=primary.name.value,
        secondary=secondary.name.value,
        webhook_sinks=len(config.notification_webhook_urls),
    )
    return Container(
        settings=config,
        stores=stores,
        cache=cache,
        sweeper=CacheSweeper(cache, interval=config.cache_sweep_interval_seconds),
        gateway=gateway,
        validator=validator,
        availability=availability,
        audit=audit,
        state_machine=state_machine,
        inbox=inbox,
        notifier=notifier,
        engine=engine,
        preferences=preferences,
        workflow=workflow,
        detector=detector,
        monitor=monitor,
    )


# Singleton instance
_container: Optional[Container] = None


def get_container() -> Container:
    """Get or create the singleton Container."""
    global _container
    if _container is None:
        _container = build_container()
    return _container


def set_container(container: Optional[Container]) -> None:
    """Replace the singleton (tests, or None to rebuild on next use)."""
    global _container
    _container = container
