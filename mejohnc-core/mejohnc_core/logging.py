"""
Mejohnc Core Logging
====================
Structured logging setup and correlation IDs.

Usage:
    from mejohnc_core.logging import setup_logging, bind_correlation_id

    # Setup at startup
    setup_logging(service_name="mejohnc-dashboard")

    # Per request
    bind_correlation_id(get_correlation_id(request.headers))
"""

import logging
import random
import string
import sys
import time
from contextvars import ContextVar
from typing import Mapping, Optional

import structlog

from .config import ServiceSettings

# Context variables for request tracking
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
service_name_var: ContextVar[str] = ContextVar("service_name", default="unknown")

CORRELATION_HEADERS = ("x-correlation-id", "x-request-id")

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_correlation_id() -> str:
    """Millisecond timestamp and a random suffix, both base 36."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=7))
    return f"{timestamp}-{suffix}"


def get_correlation_id(headers: Optional[Mapping[str, str]] = None) -> str:
    """Correlation ID from request headers, or a new one."""
    if headers:
        for name in CORRELATION_HEADERS:
            existing = headers.get(name)
            if existing:
                return existing
    return generate_correlation_id()


def add_service_name(logger, method_name, event_dict):
    """Processor adding the configured service name to every event."""
    event_dict.setdefault("service", service_name_var.get())
    return event_dict


def bind_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind a correlation ID to the current context and return it."""
    cid = correlation_id or generate_correlation_id()
    correlation_id_var.set(cid)
    structlog.contextvars.bind_contextvars(correlation_id=cid)
    return cid


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure stdlib logging and structlog for a service.

    Args:
        service_name: Name of the service (e.g., "mejohnc-dashboard")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)

    Returns:
        Configured root logger
    """
    service_name_var.set(service_name)

    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    if json_output:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta] + renderers,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    structlog.get_logger(__name__).info("logging_configured")

    return root_logger


def setup_logging_from_settings(settings: ServiceSettings) -> logging.Logger:
    """setup_logging driven by SERVICE_NAME, LOG_LEVEL and LOG_JSON."""
    return setup_logging(
        settings.service_name,
        level=settings.log_level,
        json_output=settings.log_json,
    )
