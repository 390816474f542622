# Resilience utilities - retry/backoff and circuit breaking for external calls
from .retry import is_retryable_error, retry_with_backoff, retry_with_jitter
from .circuit_breaker import CircuitBreaker, CircuitState

__all__ = [
    "is_retryable_error",
    "retry_with_backoff",
    "retry_with_jitter",
    "CircuitBreaker",
    "CircuitState",
]
