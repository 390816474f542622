# app/errors.py
"""
Error taxonomy for the rescheduling pipeline.

Every error raised by the core derives from ReschedulerError and carries
the HTTP status the API layer should answer with. A failed weather check is
NOT an error: it is a normal ValidationVerdict with is_valid=False.
"""

from typing import Optional


class ReschedulerError(Exception):
    """Base exception for all core errors."""
    status_code: int = 500


class ProviderFailure(ReschedulerError):
    """
    Raised when no weather provider could answer for a coordinate.

    Never substituted with stale or synthetic data.
    """
    status_code = 503

    def __init__(
        self,
        message: str,
        primary_error: Optional[BaseException] = None,
        secondary_error: Optional[BaseException] = None,
    ):
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        super().__init__(message)


class ProviderPayloadError(ReschedulerError):
    """Raised when a provider payload is missing its core fields."""
    status_code = 502


class ProviderConfigurationError(ReschedulerError):
    """Raised when a provider is called without credentials."""
    status_code = 503


class CircuitOpenError(ReschedulerError):
    """Raised by a circuit breaker that rejects a call without attempting it."""
    status_code = 503

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Circuit breaker {name} is OPEN - service temporarily unavailable"
        )


class NoCandidateSlot(ReschedulerError):
    """Raised when the reschedule pipeline ranks zero options."""
    status_code = 422


class DeadlinePassed(ReschedulerError):
    """Raised when a preference is submitted after its deadline."""
    status_code = 409


class PartialCycleFailure(ReschedulerError):
    """
    Raised when a scan cycle processed bookings but none succeeded.

    A cycle where at least one booking succeeded is reported as degraded
    instead of raising.
    """
    status_code = 500

    def __init__(self, message: str, report=None):
        self.report = report
        super().__init__(message)


class BookingNotFound(ReschedulerError):
    status_code = 404


class InvalidTransition(ReschedulerError):
    status_code = 409


class PreferenceNotFound(ReschedulerError):
    status_code = 404


class InvalidPreference(ReschedulerError):
    status_code = 400


class PreferencesPending(ReschedulerError):
    """Raised when confirming before both rankings are in and the deadline is open."""
    status_code = 409


class SelectionUnavailable(ReschedulerError):
    """Raised when the instructor has not ranked any usable option."""
    status_code = 409
