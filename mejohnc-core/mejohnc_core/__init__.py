"""
Mejohnc Core Library
====================
Client-side resilience for the admin dashboard's backend calls.
"""

__version__ = "0.1.0"

# Exceptions
from mejohnc_core.exceptions import (
    ResilienceError,
    RetryAborted,
    CircuitOpenError,
)

# Retry
from mejohnc_core.retry import (
    RetryOptions,
    RetryObserver,
    CallbackRetryObserver,
    RetryingOperation,
    calculate_delay,
    is_retryable_error,
    retry,
    with_retry,
)

# Circuit Breaker
from mejohnc_core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitBreakerStats,
    CircuitState,
    CallbackStateObserver,
    circuit_breaker,
    create_registry,
)

# Config
from mejohnc_core.config import (
    RetrySettings,
    BreakerSettings,
    ServiceSettings,
)

# HTTP
from mejohnc_core.http import (
    ResilientClient,
    retry_fetch,
)

__all__ = [
    # Exceptions
    "ResilienceError",
    "RetryAborted",
    "CircuitOpenError",
    # Retry
    "RetryOptions",
    "RetryObserver",
    "CallbackRetryObserver",
    "RetryingOperation",
    "calculate_delay",
    "is_retryable_error",
    "retry",
    "with_retry",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitBreakerStats",
    "CircuitState",
    "CallbackStateObserver",
    "circuit_breaker",
    "create_registry",
    # Config
    "RetrySettings",
    "BreakerSettings",
    "ServiceSettings",
    # HTTP
    "ResilientClient",
    "retry_fetch",
]
