"""
Resilience Metrics
==================
Prometheus metrics for circuit breakers and retries.

Breaker series are keyed by breaker name only. Breakers that share a name
in one process (for example across two registries) share one series, and
the most recent state change or reset wins. Give breakers process-unique
names when their metrics must be told apart.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

# Custom registry so the library never collides with application metrics
RESILIENCE_REGISTRY = CollectorRegistry()

CIRCUIT_BREAKER_STATE = Gauge(
    name="circuit_breaker_state",
    documentation="Circuit breaker state (0=closed, 1=half-open, 2=open)",
    labelnames=["breaker"],
    registry=RESILIENCE_REGISTRY,
)

CIRCUIT_BREAKER_REJECTIONS = Counter(
    name="circuit_breaker_rejections_total",
    documentation="Calls rejected by an open circuit breaker",
    labelnames=["breaker"],
    registry=RESILIENCE_REGISTRY,
)

RETRY_ATTEMPTS = Counter(
    name="retry_attempts_total",
    documentation="Retries scheduled after a transient failure",
    labelnames=["operation"],
    registry=RESILIENCE_REGISTRY,
)

STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}


def record_circuit_state(breaker: str, state: str):
    """
    Record circuit breaker state.

    Args:
        breaker: Breaker name
        state: State (closed, half_open, open)
    """
    CIRCUIT_BREAKER_STATE.labels(breaker=breaker).set(STATE_VALUES.get(state, -1))


def record_rejection(breaker: str):
    """Record a call rejected by an open breaker."""
    CIRCUIT_BREAKER_REJECTIONS.labels(breaker=breaker).inc()


def record_retry_attempt(operation: str):
    """Record a scheduled retry."""
    RETRY_ATTEMPTS.labels(operation=operation).inc()


def get_metrics_text() -> bytes:
    """Render resilience metrics in Prometheus exposition format."""
    return generate_latest(RESILIENCE_REGISTRY)
