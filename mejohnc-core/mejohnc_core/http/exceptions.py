from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for backend communication errors."""
    transient = False

    def __init__(self, message: str, service: str = "unknown", status_code: Optional[int] = None, details: Any = None):
        self.message = message
        self.service = service
        self.status_code = status_code
        self.details = details
        super().__init__(f"[{service}] {message} (Status: {status_code})")

class ServiceUnavailableError(ServiceError):
    """Raised when the backend is unreachable or answers with a 5xx."""
    transient = True

class ServiceTimeoutError(ServiceUnavailableError):
    """Raised on transport timeouts and 408 responses."""
    pass

class RateLimitedError(ServiceError):
    """Raised on 429 responses."""
    def __init__(self, message: str, service: str = "unknown", status_code: Optional[int] = 429, details: Any = None, retry_after: Optional[float] = None):
        super().__init__(message, service=service, status_code=status_code, details=details)
        self.retry_after = retry_after

class AuthenticationError(ServiceError):
    """Raised when the backend rejects credentials (401/403)."""
    pass

class NotFoundError(ServiceError):
    """Raised when the requested resource is not found (404)."""
    pass

class ValidationError(ServiceError):
    """Raised when the backend returns a validation error (422)."""
    pass

class HTTPStatusFailure(ServiceError):
    """A retryable status surfaced by retry_fetch."""
    pass
