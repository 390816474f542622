# app/resilience/circuit_breaker.py
"""
Circuit breaker for external calls.

States:
CLOSED -> OPEN (failure_threshold consecutive failures)
OPEN -> HALF_OPEN (reset_timeout elapsed since the last failure)
HALF_OPEN -> CLOSED (success_threshold consecutive successes)
HALF_OPEN -> OPEN (any failure)

State is per process and per breaker instance; nothing is shared between
instances.
"""

import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, TypeVar

from ..errors import CircuitOpenError
from ..logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Failing, reject immediately
    HALF_OPEN = "HALF_OPEN"  # Testing if service recovered


class CircuitBreaker:
    """
    Fails fast once a dependency has failed repeatedly.

    Usage:
        breaker = CircuitBreaker("openweathermap", failure_threshold=5)
        data = breaker.call(lambda: client.fetch(coord))
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        success_threshold: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.success_threshold = success_threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = 0.0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def call(self, fn: Callable[[], T]) -> T:
        """
        Execute fn with circuit breaker protection.

        Raises:
            CircuitOpenError: Circuit is open; fn is not called
        """
        self._before_call()
        try:
            result = fn()
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            if self._state != CircuitState.OPEN:
                return
            if self._clock() - self._last_failure_time >= self.reset_timeout:
                logger.warning("circuit_half_open", breaker=self.name)
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
                return
        raise CircuitOpenError(self.name)

    def _on_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    logger.warning("circuit_closed", breaker=self.name)
                    self._state = CircuitState.CLOSED
                    self._success_count = 0

    def _on_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                logger.error("circuit_opened", breaker=self.name, reason="half_open_trial_failed")
                self._state = CircuitState.OPEN
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                logger.error(
                    "circuit_opened",
                    breaker=self.name,
                    reason="threshold_exceeded",
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold,
                )
                self._state = CircuitState.OPEN

    def reset(self) -> None:
        """Manually close the circuit."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
        logger.warning("circuit_reset", breaker=self.name)

    def snapshot(self) -> Dict[str, Any]:
        """Current state for health reporting."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "reset_timeout_seconds": self.reset_timeout,
        }
