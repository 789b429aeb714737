"""
Resilience Exceptions
=====================
Errors added by the resilience layer itself.

Everything else (operation failures, exhausted retries) propagates
unchanged to the caller.
"""

from typing import Any, Optional


class ResilienceError(Exception):
    """Base class for errors raised by the resilience layer."""
    pass


class RetryAborted(ResilienceError):
    """Raised when the cancellation signal fires before or between attempts."""

    def __init__(
        self,
        message: str = "Retry aborted",
        attempt: int = 0,
        last_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.attempt = attempt
        self.last_error = last_error


class CircuitOpenError(ResilienceError):
    """Raised when a breaker rejects a call and no fallback is configured."""

    def __init__(self, name: str, state: Any, retry_after: float = 0.0):
        self.name = name
        self.state = state
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker '{name}' is open. "
            f"Retry after {retry_after:.1f}s"
        )
