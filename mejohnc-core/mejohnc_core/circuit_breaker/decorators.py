"""
Circuit Breaker Decorator
=========================
Decorator for wrapping async functions with circuit breaker protection.
"""

from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .models import CircuitBreakerConfig
from .registry import CircuitBreakerRegistry

T = TypeVar("T")


def circuit_breaker(
    name: str,
    registry: CircuitBreakerRegistry,
    config: Optional[CircuitBreakerConfig] = None,
    fallback: Optional[Callable[[], Any]] = None,
):
    """
    Decorator to wrap async functions with a named breaker.

    Example:
        @circuit_breaker("supabase", registry)
        async def list_contacts():
            return await client.get("/rest/v1/contacts")

        @circuit_breaker("external-api", registry, fallback=lambda: [])
        async def fetch_headlines():
            return await news_client.get("/top")
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        breaker = registry.get(name, config)

        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            if fallback is None:
                return await breaker.execute(lambda: func(*args, **kwargs))
            return await breaker.execute_with_fallback(
                lambda: func(*args, **kwargs),
                fallback,
            )

        return wrapper

    return decorator
