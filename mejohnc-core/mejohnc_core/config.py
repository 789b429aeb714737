"""
Resilience Configuration
========================
Settings read from environment variables.
"""

import os
from dataclasses import dataclass, field

from .retry import RetryOptions


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RetrySettings:
    """Default retry behaviour for backend calls."""
    max_retries: int = field(
        default_factory=lambda: int(os.environ.get("RETRY_MAX_RETRIES", "3"))
    )
    initial_delay: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_INITIAL_DELAY", "1.0"))
    )
    max_delay: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_MAX_DELAY", "30.0"))
    )
    backoff_multiplier: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_BACKOFF_MULTIPLIER", "2.0"))
    )
    jitter: bool = field(default_factory=lambda: _env_bool("RETRY_JITTER", "true"))

    def to_options(self, **overrides) -> RetryOptions:
        """Build RetryOptions from these settings."""
        values = {
            "max_retries": self.max_retries,
            "initial_delay": self.initial_delay,
            "max_delay": self.max_delay,
            "backoff_multiplier": self.backoff_multiplier,
            "jitter": self.jitter,
        }
        values.update(overrides)
        return RetryOptions(**values)


@dataclass
class BreakerSettings:
    """Thresholds for the pre-registered breakers."""
    supabase_failure_threshold: int = field(
        default_factory=lambda: int(os.environ.get("SUPABASE_BREAKER_FAILURE_THRESHOLD", "5"))
    )
    supabase_recovery_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SUPABASE_BREAKER_RECOVERY_TIMEOUT", "30.0"))
    )
    external_api_failure_threshold: int = field(
        default_factory=lambda: int(os.environ.get("EXTERNAL_API_BREAKER_FAILURE_THRESHOLD", "10"))
    )
    external_api_recovery_timeout: float = field(
        default_factory=lambda: float(os.environ.get("EXTERNAL_API_BREAKER_RECOVERY_TIMEOUT", "15.0"))
    )


@dataclass
class ServiceSettings:
    """Process-level settings."""
    service_name: str = field(
        default_factory=lambda: os.environ.get("SERVICE_NAME", "mejohnc-dashboard")
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))
    log_json: bool = field(default_factory=lambda: _env_bool("LOG_JSON", "true"))
    supabase_url: str = field(
        default_factory=lambda: os.environ.get("SUPABASE_URL", "http://localhost:54321")
    )
    supabase_anon_key: str = field(
        default_factory=lambda: os.environ.get("SUPABASE_ANON_KEY", "")
    )
    http_timeout: float = field(
        default_factory=lambda: float(os.environ.get("HTTP_TIMEOUT", "10.0"))
    )
    retry: RetrySettings = field(default_factory=RetrySettings)
    breakers: BreakerSettings = field(default_factory=BreakerSettings)
