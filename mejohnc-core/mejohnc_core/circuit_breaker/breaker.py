"""
Circuit Breaker Core
====================
The main CircuitBreaker class for async-compatible circuit breaker pattern.
"""

import inspect
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, TypeVar, Union

import structlog

from ..exceptions import CircuitOpenError
from ..metrics import record_circuit_state, record_rejection
from .models import (
    CallResult,
    CircuitBreakerConfig,
    CircuitBreakerStats,
    CircuitState,
    timestamp_to_datetime,
)

T = TypeVar("T")


class CircuitBreaker:
    """
    Async-compatible circuit breaker.

    Bookkeeping never awaits, so tasks sharing one breaker on an event loop
    cannot interleave counter updates. Not safe across OS threads.

    Example:
        breaker = CircuitBreaker(CircuitBreakerConfig(name="supabase"))

        try:
            rows = await breaker.execute(lambda: client.get("/rest/v1/posts"))
        except CircuitOpenError:
            rows = []
    """

    def __init__(
        self,
        config: Union[CircuitBreakerConfig, str],
        clock: Callable[[], float] = time.time,
        logger: Any = None,
    ):
        if isinstance(config, str):
            config = CircuitBreakerConfig(name=config)
        self.config = config
        self.name = config.name
        self._clock = clock
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._successes = 0
        self._half_open_successes = 0
        self._rejections = 0
        self._last_failure_time = 0.0
        self._last_success_time = 0.0
        self._last_state_change = clock()
        self._history: List[CallResult] = []

        record_circuit_state(self.name, self._state.value)

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failures

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute an async operation with circuit breaker protection.

        Raises:
            CircuitOpenError: If the call is rejected and no fallback is configured
        """
        return await self._call(operation, self.config.fallback)

    async def execute_with_fallback(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], Any],
    ) -> T:
        """Execute, returning ``fallback()`` instead of raising when rejected."""
        return await self._call(operation, fallback)

    def is_allowed(self) -> bool:
        """Whether a call issued now would be let through."""
        self._clean_history()

        if self._state == CircuitState.OPEN:
            return self._should_attempt_recovery()
        return True

    async def _call(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Optional[Callable[[], Any]],
    ) -> T:
        if not self._admit():
            return await self._reject(fallback)

        start = time.perf_counter()
        try:
            result = await operation()
        except Exception:
            self._record_failure(time.perf_counter() - start)
            raise

        self._record_success(time.perf_counter() - start)
        return result

    def _admit(self) -> bool:
        self._clean_history()

        if self._state == CircuitState.OPEN:
            if not self._should_attempt_recovery():
                return False
            self._transition_to(CircuitState.HALF_OPEN)
        return True

    async def _reject(self, fallback: Optional[Callable[[], Any]]) -> Any:
        self._rejections += 1
        record_rejection(self.name)
        recovery_in = max(0.0, self._recovery_started() + self.config.recovery_timeout - self._clock())

        if fallback is None:
            self._logger.warning(
                "circuit_open_rejected",
                breaker=self.name,
                state=self._state.value,
                recovery_in=round(recovery_in, 3),
            )
            raise CircuitOpenError(self.name, self._state, recovery_in)

        self._logger.warning(
            "circuit_open_using_fallback",
            breaker=self.name,
            state=self._state.value,
            recovery_in=round(recovery_in, 3),
        )
        result = fallback()
        if inspect.isawaitable(result):
            result = await result
        return result

    def _record_success(self, duration: float):
        now = self._clock()
        self._successes += 1
        self._last_success_time = now
        self._history.append(CallResult(timestamp=now, success=True, duration=duration))

        if self._state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self.config.success_threshold:
                self._transition_to(CircuitState.CLOSED)

        elif self._state == CircuitState.CLOSED:
            self._failures = 0
            # Rate-based opening applies regardless of the order of outcomes
            if self._rate_exceeded():
                self._transition_to(CircuitState.OPEN)

    def _record_failure(self, duration: float):
        now = self._clock()
        self._failures += 1
        self._last_failure_time = now
        self._history.append(CallResult(timestamp=now, success=False, duration=duration))

        if self._state == CircuitState.HALF_OPEN:
            self._transition_to(CircuitState.OPEN)
        elif self._should_open():
            self._transition_to(CircuitState.OPEN)

    def _should_open(self) -> bool:
        if self._failures >= self.config.failure_threshold:
            return True
        return self._rate_exceeded()

    def _rate_exceeded(self) -> bool:
        recent = self._recent_calls()
        if len(recent) < self.config.minimum_calls:
            return False
        return self._failure_rate(recent) >= self.config.failure_rate_threshold

    def _recovery_started(self) -> float:
        # A forced open has no failure to count from
        return max(self._last_failure_time, self._last_state_change)

    def _should_attempt_recovery(self) -> bool:
        return self._clock() - self._recovery_started() >= self.config.recovery_timeout

    def _transition_to(self, new_state: CircuitState):
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        self._last_state_change = self._clock()

        if new_state == CircuitState.HALF_OPEN:
            self._half_open_successes = 0

        if new_state == CircuitState.CLOSED:
            self._failures = 0
            self._half_open_successes = 0

        self._logger.info(
            "circuit_state_changed",
            breaker=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
        )
        record_circuit_state(self.name, new_state.value)

        observer = self.config.observer
        if observer is not None:
            try:
                observer.on_state_change(self.name, old_state, new_state)
            except Exception:
                self._logger.exception("circuit_observer_failed", breaker=self.name)

    def _recent_calls(self) -> List[CallResult]:
        cutoff = self._clock() - self.config.window_size
        return [c for c in self._history if c.timestamp > cutoff]

    @staticmethod
    def _failure_rate(calls: List[CallResult]) -> float:
        if not calls:
            return 0.0
        failures = sum(1 for c in calls if not c.success)
        return failures * 100 / len(calls)

    def _clean_history(self):
        cutoff = self._clock() - self.config.window_size * 2
        self._history = [c for c in self._history if c.timestamp > cutoff]

    def get_stats(self) -> CircuitBreakerStats:
        """Current statistics."""
        return CircuitBreakerStats(
            name=self.name,
            state=self._state,
            failures=self._failures,
            successes=self._successes,
            total_calls=self._successes + self._failures,
            failure_rate=self._failure_rate(self._recent_calls()),
            rejections=self._rejections,
            last_failure=timestamp_to_datetime(self._last_failure_time),
            last_success=timestamp_to_datetime(self._last_success_time),
            last_state_change=datetime.fromtimestamp(self._last_state_change, tz=timezone.utc),
        )

    def force_open(self):
        """Open the circuit regardless of recorded outcomes."""
        self._transition_to(CircuitState.OPEN)

    def force_close(self):
        """Close the circuit regardless of recorded outcomes."""
        self._transition_to(CircuitState.CLOSED)

    def reset(self):
        """Return to a freshly constructed CLOSED state."""
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._successes = 0
        self._half_open_successes = 0
        self._rejections = 0
        self._last_failure_time = 0.0
        self._last_success_time = 0.0
        self._last_state_change = self._clock()
        self._history = []

        record_circuit_state(self.name, self._state.value)
        self._logger.info("circuit_reset", breaker=self.name)
