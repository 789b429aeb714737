"""
Unit Tests for the Circuit Breaker Registry
===========================================
"""

import pytest

from mejohnc_core.circuit_breaker import (
    EXTERNAL_API,
    SUPABASE,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitState,
    circuit_breaker,
    create_registry,
)
from mejohnc_core.config import BreakerSettings

from helpers import CountingOperation


class TestRegistry:
    """Tests for CircuitBreakerRegistry."""

    def test_get_is_idempotent(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)

        first = registry.get("contacts")
        second = registry.get("contacts")

        assert first is second
        assert len(registry) == 1

    def test_first_config_wins(self, clock):
        """A later config for an existing name is ignored."""
        registry = CircuitBreakerRegistry(clock=clock)

        breaker = registry.get("contacts", CircuitBreakerConfig(failure_threshold=2))
        again = registry.get("contacts", CircuitBreakerConfig(failure_threshold=50))

        assert again is breaker
        assert breaker.config.failure_threshold == 2

    def test_name_comes_from_key(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)

        breaker = registry.get("analytics", CircuitBreakerConfig(name="ignored"))

        assert breaker.name == "analytics"

    def test_find_does_not_create(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)

        assert registry.find("missing") is None
        assert "missing" not in registry
        assert len(registry) == 0

    def test_names_and_stats(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        registry.get("a")
        registry.get("b")

        assert registry.names() == ["a", "b"]
        assert [s.name for s in registry.get_all_stats()] == ["a", "b"]
        assert [b.name for b in registry.get_all()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_reset_all(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        a = registry.get("a", CircuitBreakerConfig(failure_threshold=1))
        b = registry.get("b")
        b.force_open()

        with pytest.raises(RuntimeError):
            await a.execute(CountingOperation(error=RuntimeError("down")))
        assert a.state == CircuitState.OPEN

        registry.reset_all()

        assert a.state == CircuitState.CLOSED
        assert b.state == CircuitState.CLOSED
        assert a.get_stats().failures == 0


class TestCreateRegistry:
    """Tests for the application registry factory."""

    def test_preregistered_breakers(self, clock):
        registry = create_registry(BreakerSettings(), clock=clock)

        supabase = registry.find(SUPABASE)
        external = registry.find(EXTERNAL_API)

        assert supabase.config.failure_threshold == 5
        assert supabase.config.recovery_timeout == 30.0
        assert external.config.failure_threshold == 10
        assert external.config.recovery_timeout == 15.0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_BREAKER_FAILURE_THRESHOLD", "2")
        monkeypatch.setenv("EXTERNAL_API_BREAKER_RECOVERY_TIMEOUT", "5")

        registry = create_registry()

        assert registry.find(SUPABASE).config.failure_threshold == 2
        assert registry.find(EXTERNAL_API).config.recovery_timeout == 5.0

    def test_registries_are_independent(self, clock):
        one = create_registry(clock=clock)
        two = create_registry(clock=clock)

        one.get(SUPABASE).force_open()

        assert two.get(SUPABASE).state == CircuitState.CLOSED


class TestCircuitBreakerDecorator:
    """Tests for the circuit_breaker decorator."""

    @pytest.mark.asyncio
    async def test_wraps_calls(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)

        @circuit_breaker("posts", registry, CircuitBreakerConfig(failure_threshold=1))
        async def list_posts(limit):
            return list(range(limit))

        assert await list_posts(3) == [0, 1, 2]
        assert list_posts.__name__ == "list_posts"
        assert registry.find("posts").get_stats().successes == 1

    @pytest.mark.asyncio
    async def test_rejects_when_open(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        calls = []

        @circuit_breaker("posts", registry, CircuitBreakerConfig(failure_threshold=1))
        async def list_posts():
            calls.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await list_posts()
        with pytest.raises(CircuitOpenError):
            await list_posts()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_fallback_when_open(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        registry.get("headlines").force_open()

        @circuit_breaker("headlines", registry, fallback=lambda: [])
        async def fetch_headlines():
            return ["live"]

        assert await fetch_headlines() == []
