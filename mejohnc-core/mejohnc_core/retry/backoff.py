"""
Retry Backoff
=============
Exponential backoff retry implementation.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

import structlog

from ..exceptions import RetryAborted
from ..metrics import record_retry_attempt
from .policy import is_retryable_error

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryObserver(Protocol):
    """Receives a notification before each retry delay."""

    def on_retry(self, error: BaseException, attempt: int, delay: float) -> None:
        ...


class CallbackRetryObserver:
    """Adapts a plain ``(error, attempt, delay)`` callable to RetryObserver."""

    def __init__(self, callback: Callable[[BaseException, int, float], None]):
        self.callback = callback

    def on_retry(self, error: BaseException, attempt: int, delay: float) -> None:
        self.callback(error, attempt, delay)


@dataclass
class RetryOptions:
    """Configuration for a single retry invocation."""
    max_retries: int = 3              # Retries after the first attempt
    initial_delay: float = 1.0        # Seconds before the first retry
    max_delay: float = 30.0           # Cap applied before jitter
    backoff_multiplier: float = 2.0
    jitter: bool = True               # Scale delay by [0.5, 1.0]
    is_retryable: Optional[Callable[[BaseException], bool]] = None
    observer: Optional[RetryObserver] = None
    signal: Optional[asyncio.Event] = None
    name: Optional[str] = None        # Operation label for logs and metrics

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("backoff_multiplier must be > 0")


def calculate_delay(attempt: int, options: Optional[RetryOptions] = None) -> float:
    """
    Delay in seconds before the retry that follows ``attempt``.

    ``min(initial_delay * multiplier ** (attempt - 1), max_delay)``, scaled
    by a uniform factor in [0.5, 1.0] when jitter is on, rounded to the
    millisecond.
    """
    opts = options or RetryOptions()

    delay = opts.initial_delay * (opts.backoff_multiplier ** (attempt - 1))
    delay = min(delay, opts.max_delay)

    if opts.jitter:
        delay = delay * random.uniform(0.5, 1.0)

    return round(delay, 3)


async def _sleep(
    delay: float,
    signal: Optional[asyncio.Event],
    attempt: int,
    error: BaseException,
) -> None:
    """Sleep for ``delay`` seconds, aborting early if ``signal`` fires."""
    if signal is None:
        await asyncio.sleep(delay)
        return

    try:
        await asyncio.wait_for(signal.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return

    raise RetryAborted(attempt=attempt, last_error=error)


def _notify(
    observer: Optional[RetryObserver],
    error: BaseException,
    attempt: int,
    delay: float,
) -> None:
    if observer is None:
        return
    try:
        observer.on_retry(error, attempt, delay)
    except Exception:
        logger.exception("retry_observer_failed", attempt=attempt)


async def retry(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
) -> T:
    """
    Execute an async operation with exponential backoff retry.

    Args:
        operation: Zero-argument async callable
        options: Retry configuration (defaults to RetryOptions())

    Returns:
        Result of the first successful attempt

    Raises:
        RetryAborted: If ``options.signal`` is set before an attempt or
            while waiting between attempts
        Exception: The most recent operation error, unchanged, once it is
            not retryable or the attempt budget is spent
    """
    opts = options or RetryOptions()
    is_retryable = opts.is_retryable or is_retryable_error
    total_attempts = opts.max_retries + 1
    name = opts.name or getattr(operation, "__qualname__", type(operation).__name__)
    last_error: Optional[BaseException] = None

    for attempt in range(1, total_attempts + 1):
        if opts.signal is not None and opts.signal.is_set():
            raise RetryAborted(attempt=attempt, last_error=last_error)

        try:
            return await operation()
        except Exception as e:
            last_error = e

            if attempt >= total_attempts or not is_retryable(e):
                raise

            delay = calculate_delay(attempt, opts)

            logger.warning(
                "retrying_after_failure",
                operation=name,
                attempt=attempt,
                delay=delay,
                error=str(e),
            )
            record_retry_attempt(name)
            _notify(opts.observer, e, attempt, delay)

            await _sleep(delay, opts.signal, attempt, e)

    raise last_error
