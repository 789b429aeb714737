"""
Circuit Breaker Admin Router
============================
Exposes breaker statistics and administrative actions over HTTP.
"""

import time
from datetime import datetime
from enum import Enum
from typing import List, Optional

import structlog
from fastapi import APIRouter, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel

from .circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, CircuitState
from .metrics import get_metrics_text

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CircuitStats(BaseModel):
    name: str
    state: CircuitState
    failures: int
    successes: int
    total_calls: int
    failure_rate: float
    rejections: int
    last_failure: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_state_change: datetime


class CircuitsResponse(BaseModel):
    status: HealthStatus
    circuits: List[CircuitStats]
    timestamp: float


def _to_model(breaker: CircuitBreaker) -> CircuitStats:
    stats = breaker.get_stats()
    return CircuitStats(
        name=stats.name,
        state=stats.state,
        failures=stats.failures,
        successes=stats.successes,
        total_calls=stats.total_calls,
        failure_rate=stats.failure_rate,
        rejections=stats.rejections,
        last_failure=stats.last_failure,
        last_success=stats.last_success,
        last_state_change=stats.last_state_change,
    )


def overall_status(states: List[CircuitState]) -> HealthStatus:
    """Unhealthy if any breaker is open, degraded if any is probing."""
    if CircuitState.OPEN in states:
        return HealthStatus.UNHEALTHY
    if CircuitState.HALF_OPEN in states:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def create_circuit_router(registry: CircuitBreakerRegistry, prefix: str = "/circuits") -> APIRouter:
    """
    Create an admin router for the breakers in ``registry``.

    Args:
        registry: Application breaker registry
        prefix: Route prefix

    Returns:
        FastAPI router with stats and open/close/reset endpoints
    """
    router = APIRouter(prefix=prefix, tags=["Circuits"])

    def _lookup(name: str) -> CircuitBreaker:
        breaker = registry.find(name)
        if breaker is None:
            raise HTTPException(status_code=404, detail=f"Unknown circuit breaker '{name}'")
        return breaker

    @router.get("", response_model=CircuitsResponse)
    async def list_circuits() -> CircuitsResponse:
        """Stats for every registered breaker."""
        circuits = [_to_model(b) for b in registry.get_all()]
        return CircuitsResponse(
            status=overall_status([c.state for c in circuits]),
            circuits=circuits,
            timestamp=time.time(),
        )

    @router.post("/reset", response_model=CircuitsResponse)
    async def reset_all() -> CircuitsResponse:
        registry.reset_all()
        logger.info("circuits_reset_all", count=len(registry))
        return await list_circuits()

    @router.get("/{name}", response_model=CircuitStats)
    async def get_circuit(name: str) -> CircuitStats:
        return _to_model(_lookup(name))

    @router.post("/{name}/open", response_model=CircuitStats)
    async def open_circuit(name: str) -> CircuitStats:
        breaker = _lookup(name)
        breaker.force_open()
        logger.warning("circuit_forced_open", breaker=name)
        return _to_model(breaker)

    @router.post("/{name}/close", response_model=CircuitStats)
    async def close_circuit(name: str) -> CircuitStats:
        breaker = _lookup(name)
        breaker.force_close()
        logger.info("circuit_forced_closed", breaker=name)
        return _to_model(breaker)

    @router.post("/{name}/reset", response_model=CircuitStats)
    async def reset_circuit(name: str) -> CircuitStats:
        breaker = _lookup(name)
        breaker.reset()
        return _to_model(breaker)

    return router


def create_metrics_router(path: str = "/metrics") -> APIRouter:
    """Router serving resilience metrics in Prometheus text format."""
    router = APIRouter(tags=["Metrics"])

    @router.get(path)
    async def metrics():
        return Response(content=get_metrics_text(), media_type=CONTENT_TYPE_LATEST)

    return router
