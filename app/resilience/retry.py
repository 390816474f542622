# app/resilience/retry.py
"""
Retry with exponential backoff.

Built on tenacity. Delay before retry n (n counted from 0) is
min(initial_delay * backoff_factor ** n, max_delay); the jittered variant
scales each delay to 50-100% of that value so concurrent callers do not
retry in lockstep.
"""

import random
import time
from typing import Callable, Optional, TypeVar

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..ingestion.http import HttpConnectionError, HttpStatusError, HttpTimeoutError
from ..logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_BACKOFF_FACTOR = 2.0


def is_retryable_error(exc: BaseException) -> bool:
    """
    Network-class errors, timeouts and 5xx responses are retryable.

    Everything else (4xx, bad payloads, missing credentials, open circuits)
    is deterministic and propagates immediately.
    """
    if isinstance(exc, HttpStatusError):
        return exc.status_code >= 500
    if isinstance(exc, (HttpTimeoutError, HttpConnectionError, TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class wait_jitter(wait_base):
    """Scale another wait strategy by a random factor in [low, high]."""

    def __init__(
        self,
        wait: wait_base,
        low: float = 0.5,
        high: float = 1.0,
        rng: Callable[[], float] = random.random,
    ):
        self.wait = wait
        self.low = low
        self.high = high
        self.rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        base = self.wait(retry_state)
        return base * (self.low + (self.high - self.low) * self.rng())


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "retry_scheduled",
        attempt=retry_state.attempt_number,
        delay_seconds=round(delay, 3),
        error=str(exc),
    )


def _build_retrying(
    max_retries: int,
    wait: wait_base,
    retryable: Callable[[BaseException], bool],
    sleep: Callable[[float], None],
) -> Retrying:
    return Retrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait,
        retry=retry_if_exception(retryable),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,  # Re-raise the last exception after retries exhausted
    )


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    retryable: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call fn, retrying retryable failures with exponential backoff.

    Args:
        fn: Zero-argument callable
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry (seconds)
        max_delay: Upper bound for any delay (seconds)
        backoff_factor: Multiplier applied per retry
        retryable: Predicate deciding whether an error is worth retrying
        sleep: Sleep function (injected by tests)

    Returns:
        Whatever fn returns

    Raises:
        The last error from fn once retries are exhausted, or the first
        non-retryable error unchanged.
    """
    wait = wait_exponential(multiplier=initial_delay, exp_base=backoff_factor, max=max_delay)
    retrying = _build_retrying(max_retries, wait, retryable, sleep)
    return retrying(fn)


def retry_with_jitter(
    fn: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    retryable: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], None] = time.sleep,
    rng: Optional[Callable[[], float]] = None,
) -> T:
    """Same as retry_with_backoff with every delay scaled to 50-100%."""
    wait = wait_jitter(
        wait_exponential(multiplier=initial_delay, exp_base=backoff_factor, max=max_delay),
        rng=rng or random.random,
    )
    retrying = _build_retrying(max_retries, wait, retryable, sleep)
    return retrying(fn)
