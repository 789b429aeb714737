"""
Retry Policy
============
Default classification of transient failures.

Classification uses structured data only: exception types for network
and timeout failures, and a ``status_code`` attribute for HTTP failures.
Status codes are never parsed out of message text.
"""

import asyncio
from typing import Optional

import httpx

RETRYABLE_STATUS_CODES = frozenset({408, 429})

NETWORK_ERRORS = (
    ConnectionError,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)

TIMEOUT_ERRORS = (
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
)


def is_retryable_status(status_code: Optional[int]) -> bool:
    """True for 5xx, 408 (request timeout) and 429 (rate limited)."""
    if status_code is None:
        return False
    return 500 <= status_code <= 599 or status_code in RETRYABLE_STATUS_CODES


def get_status_code(error: BaseException) -> Optional[int]:
    """Extract an HTTP status code carried by an error, if any."""
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def is_retryable_error(error: BaseException) -> bool:
    """
    Default retryability predicate.

    Retries network-level failures, timeouts, errors flagged
    ``transient`` and errors carrying a 5xx/408/429 status code.
    Everything else fails immediately.
    """
    if getattr(error, "transient", False) is True:
        return True
    if isinstance(error, TIMEOUT_ERRORS):
        return True
    if isinstance(error, NETWORK_ERRORS):
        return True
    return is_retryable_status(get_status_code(error))
