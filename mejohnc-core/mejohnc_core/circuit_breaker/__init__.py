"""
Mejohnc Core - Circuit Breaker
==============================
Async circuit breaker for backend resilience.

Circuit breaker pattern fails fast when a backend is unhealthy. States:

1. CLOSED: Normal operation, requests flow through
2. OPEN: Backend is failing, requests are rejected (fallback or error)
3. HALF-OPEN: Probing whether the backend has recovered

Usage:
    from mejohnc_core.circuit_breaker import create_registry

    registry = create_registry()
    supabase = registry.get("supabase")

    posts = await supabase.execute(lambda: client.get("/rest/v1/posts"))
"""

from ..exceptions import CircuitOpenError
from .models import (
    CallbackStateObserver,
    CallResult,
    CircuitBreakerConfig,
    CircuitBreakerStats,
    CircuitState,
    StateChangeObserver,
)

from .breaker import CircuitBreaker

from .registry import (
    EXTERNAL_API,
    SUPABASE,
    CircuitBreakerRegistry,
    create_registry,
)

from .decorators import circuit_breaker

__all__ = [
    # Models
    "CircuitState",
    "CircuitOpenError",
    "CircuitBreakerConfig",
    "CircuitBreakerStats",
    "CallResult",
    "StateChangeObserver",
    "CallbackStateObserver",
    # Breaker
    "CircuitBreaker",
    # Registry
    "CircuitBreakerRegistry",
    "create_registry",
    "SUPABASE",
    "EXTERNAL_API",
    # Decorator
    "circuit_breaker",
]
