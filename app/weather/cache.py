# app/weather/cache.py
"""
In-process TTL cache for weather observations.

Entries are keyed by the coordinate rounded to 4 decimals, optionally
prefixed with a namespace ("cross" for cross-validated results). An entry
older than the TTL is never returned, whether or not the sweeper has run.
When full, the oldest inserted entry is evicted first.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..logging import get_weather_logger
from .models import Coordinate, WeatherObservation

logger = get_weather_logger("cache")

DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_SIZE = 1000
DEFAULT_SWEEP_INTERVAL = 60.0


@dataclass
class _Entry:
    observation: WeatherObservation
    stored_at: float


class WeatherCache:
    """
    TTL + bounded-size cache of WeatherObservation.

    Thread-safe: cross-validation writes from worker threads.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def _key(coord: Coordinate, namespace: Optional[str]) -> str:
        key = coord.cache_key()
        return f"{namespace}:{key}" if namespace else key

    def get(self, coord: Coordinate, namespace: Optional[str] = None) -> Optional[WeatherObservation]:
        key = self._key(coord, namespace)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.observation

    def set(
        self,
        coord: Coordinate,
        observation: WeatherObservation,
        namespace: Optional[str] = None,
    ) -> None:
        key = self._key(coord, namespace)
        with self._lock:
            # Re-insert so a refreshed key moves to the back of the FIFO
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("cache_evicted", key=evicted)
            self._entries[key] = _Entry(observation=observation, stored_at=self._clock())

    def sweep(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if now - entry.stored_at > self.ttl_seconds
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_swept", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }


class CacheSweeper:
    """
    Periodically sweeps a WeatherCache on a daemon timer.

    Usage:
        sweeper = CacheSweeper(cache, interval=60)
        sweeper.start()
        ...
        sweeper.stop()
    """

    def __init__(self, cache: WeatherCache, interval: float = DEFAULT_SWEEP_INTERVAL):
        self.cache = cache
        self.interval = interval
        self._timer: Optional[threading.Timer] = None
        self._stopped = threading.Event()

    def _schedule(self) -> None:
        if self._stopped.is_set():
            return
        self._timer = threading.Timer(self.interval, self._run)
        self._timer.daemon = True
        self._timer.start()

    def _run(self) -> None:
        try:
            self.cache.sweep()
        except Exception as e:
            logger.error("cache_sweep_failed", error=str(e))
        self._schedule()

    def start(self) -> None:
        self._stopped.clear()
        self._schedule()
        logger.info("cache_sweeper_started", interval_seconds=self.interval)

    def stop(self) -> None:
        self._stopped.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.info("cache_sweeper_stopped")

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._stopped.is_set()
