from .client import ResilientClient
from .exceptions import (
    ServiceError,
    ServiceUnavailableError,
    ServiceTimeoutError,
    RateLimitedError,
    AuthenticationError,
    NotFoundError,
    ValidationError,
    HTTPStatusFailure,
)
from .fetch import retry_fetch

__all__ = [
    "ResilientClient",
    "retry_fetch",
    "ServiceError",
    "ServiceUnavailableError",
    "ServiceTimeoutError",
    "RateLimitedError",
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
    "HTTPStatusFailure",
]
