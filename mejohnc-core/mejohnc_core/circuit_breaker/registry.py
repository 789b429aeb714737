"""
Circuit Breaker Registry
========================
Registry for managing named circuit breaker instances.
"""

import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

import structlog

from ..config import BreakerSettings
from .breaker import CircuitBreaker
from .models import CircuitBreakerConfig, CircuitBreakerStats

logger = structlog.get_logger(__name__)

SUPABASE = "supabase"
EXTERNAL_API = "external-api"


class CircuitBreakerRegistry:
    """
    Name -> breaker mapping. Entries are created lazily and never removed.

    One registry is created at application start-up (see create_registry)
    and passed to whatever needs breakers.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> CircuitBreaker:
        """
        Get or create a circuit breaker.

        Args:
            name: Breaker name
            config: Optional configuration (only used if creating new breaker)

        Returns:
            CircuitBreaker instance
        """
        breaker = self._breakers.get(name)
        if breaker is None:
            config = replace(config, name=name) if config else CircuitBreakerConfig(name=name)
            breaker = CircuitBreaker(config, clock=self._clock)
            self._breakers[name] = breaker
            logger.debug("circuit_registered", breaker=name)
        return breaker

    def get_all(self) -> List[CircuitBreaker]:
        return list(self._breakers.values())

    def get_all_stats(self) -> List[CircuitBreakerStats]:
        """Stats for all registered breakers."""
        return [b.get_stats() for b in self._breakers.values()]

    def find(self, name: str) -> Optional[CircuitBreaker]:
        """Registered breaker or None, without creating one."""
        return self._breakers.get(name)

    def names(self) -> List[str]:
        return list(self._breakers)

    def reset_all(self):
        """Reset every registered breaker to closed state."""
        for breaker in self._breakers.values():
            breaker.reset()

    def __contains__(self, name: Any) -> bool:
        return name in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)


def create_registry(
    settings: Optional[BreakerSettings] = None,
    clock: Callable[[], float] = time.time,
) -> CircuitBreakerRegistry:
    """Build the application registry with the backend breakers pre-registered."""
    settings = settings or BreakerSettings()
    registry = CircuitBreakerRegistry(clock=clock)

    registry.get(SUPABASE, CircuitBreakerConfig(
        failure_threshold=settings.supabase_failure_threshold,
        recovery_timeout=settings.supabase_recovery_timeout,
    ))
    registry.get(EXTERNAL_API, CircuitBreakerConfig(
        failure_threshold=settings.external_api_failure_threshold,
        recovery_timeout=settings.external_api_recovery_timeout,
    ))
    return registry
