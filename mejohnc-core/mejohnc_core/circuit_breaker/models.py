"""
Circuit Breaker Models
======================
Data models and enums for the circuit breaker pattern.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


class StateChangeObserver(Protocol):
    """Notified after every state transition."""

    def on_state_change(
        self, name: str, old_state: CircuitState, new_state: CircuitState
    ) -> None:
        ...


class CallbackStateObserver:
    """Adapts a plain ``(old_state, new_state)`` callable to StateChangeObserver."""

    def __init__(self, callback: Callable[[CircuitState, CircuitState], None]):
        self.callback = callback

    def on_state_change(
        self, name: str, old_state: CircuitState, new_state: CircuitState
    ) -> None:
        self.callback(old_state, new_state)


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""
    name: str = "default"
    failure_threshold: int = 5             # Failures before opening
    failure_rate_threshold: float = 50.0   # Percent of failures in window
    minimum_calls: int = 10                # Calls in window before rate applies
    recovery_timeout: float = 30.0         # Seconds open before probing
    success_threshold: int = 3             # Half-open successes to close
    window_size: float = 60.0              # Rolling window in seconds
    fallback: Optional[Callable[[], Any]] = None
    observer: Optional[StateChangeObserver] = None


@dataclass
class CallResult:
    """One recorded call outcome."""
    timestamp: float
    success: bool
    duration: float


def timestamp_to_datetime(ts: float) -> Optional[datetime]:
    """UTC datetime for a non-zero epoch timestamp, else None."""
    return datetime.fromtimestamp(ts, tz=timezone.utc) if ts else None


@dataclass
class CircuitBreakerStats:
    """Point-in-time statistics for one breaker."""
    name: str
    state: CircuitState
    failures: int
    successes: int
    total_calls: int
    failure_rate: float
    rejections: int
    last_failure: Optional[datetime]
    last_success: Optional[datetime]
    last_state_change: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failures": self.failures,
            "successes": self.successes,
            "total_calls": self.total_calls,
            "failure_rate": self.failure_rate,
            "rejections": self.rejections,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_state_change": self.last_state_change.isoformat(),
        }
