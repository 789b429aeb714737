"""
Retry Logic with Exponential Backoff
=====================================
Retry mechanism for transient backend failures.

Usage:
    from mejohnc_core.retry import retry, RetryOptions

    posts = await retry(lambda: client.get("/rest/v1/posts"), RetryOptions(max_retries=2))
"""

from ..exceptions import RetryAborted
from .backoff import (
    CallbackRetryObserver,
    RetryObserver,
    RetryOptions,
    calculate_delay,
    retry,
)
from .decorators import RetryingOperation, with_retry
from .policy import is_retryable_error, is_retryable_status

__all__ = [
    # Exceptions
    "RetryAborted",
    # Backoff
    "RetryOptions",
    "RetryObserver",
    "CallbackRetryObserver",
    "calculate_delay",
    "retry",
    # Wrappers
    "with_retry",
    "RetryingOperation",
    # Policy
    "is_retryable_error",
    "is_retryable_status",
]
