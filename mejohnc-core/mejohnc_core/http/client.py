from dataclasses import replace
from typing import Any, Dict, Optional, Type, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel

from ..circuit_breaker import SUPABASE, CircuitBreakerRegistry
from ..config import ServiceSettings
from ..retry import RetryOptions, retry
from .exceptions import (
    AuthenticationError,
    NotFoundError,
    RateLimitedError,
    ServiceError,
    ServiceTimeoutError,
    ServiceUnavailableError,
    ValidationError,
)

# Generic type for Pydantic models
T = TypeVar("T", bound=BaseModel)

logger = structlog.get_logger(__name__)


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ResilientClient:
    """
    Async HTTP client for the hosted backend and external APIs.

    Features:
    - Retries on network errors, timeouts, 408/429 and 5xx responses.
    - A named circuit breaker around the whole retried call.
    - Connection pooling (via httpx.AsyncClient).
    - Pydantic model deserialization.
    - Standardized exception mapping.
    """

    def __init__(
        self,
        base_url: str,
        service_name: str,
        registry: CircuitBreakerRegistry,
        breaker_name: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        retry_options: Optional[RetryOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name
        self.breaker = registry.get(breaker_name or service_name)
        self.retry_options = retry_options or RetryOptions()

        headers = {
            "User-Agent": f"mejohnc-core/{service_name}",
            "Accept": "application/json",
        }
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ServiceSettings,
        registry: CircuitBreakerRegistry,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ResilientClient":
        """Client for the hosted backend, guarded by the ``supabase`` breaker."""
        return cls(
            base_url=settings.supabase_url,
            service_name=SUPABASE,
            registry=registry,
            breaker_name=SUPABASE,
            api_key=settings.supabase_anon_key or None,
            timeout=settings.http_timeout,
            retry_options=settings.retry.to_options(),
            transport=transport,
        )

    def _retry_options_for(self, method: str) -> RetryOptions:
        if self.retry_options.name is not None:
            return self.retry_options
        return replace(self.retry_options, name=f"{self.service_name}:{method}")

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "ResilientClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    def _map_exception(self, exc: httpx.HTTPError) -> ServiceError:
        """Map httpx exceptions to service exceptions."""
        if isinstance(exc, httpx.TimeoutException):
            return ServiceTimeoutError("Request timed out", service=self.service_name)
        if isinstance(exc, (httpx.NetworkError, httpx.RemoteProtocolError)):
            return ServiceUnavailableError(f"Failed to connect: {exc}", service=self.service_name)
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            text = exc.response.text
            if status in (401, 403):
                return AuthenticationError("Unauthorized" if status == 401 else "Forbidden", service=self.service_name, status_code=status)
            if status == 404:
                return NotFoundError("Resource not found", service=self.service_name, status_code=status)
            if status == 408:
                return ServiceTimeoutError("Request timeout", service=self.service_name, status_code=status, details=text)
            if status == 422:
                return ValidationError("Validation error", service=self.service_name, status_code=status, details=text)
            if status == 429:
                return RateLimitedError(
                    "Rate limited",
                    service=self.service_name,
                    details=text,
                    retry_after=_parse_retry_after(exc.response),
                )
            if status >= 500:
                return ServiceUnavailableError("Server error", service=self.service_name, status_code=status, details=text)

            return ServiceError(f"HTTP {status} Error", service=self.service_name, status_code=status, details=text)

        return ServiceError(f"Unexpected error: {exc}", service=self.service_name)

    async def _send(
        self,
        method: str,
        path: str,
        response_model: Optional[Type[T]] = None,
        **kwargs,
    ) -> Union[T, Dict[str, Any], None]:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise self._map_exception(e) from e

        if response.status_code == 204 or not response.content:
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("backend_invalid_json", service=self.service_name, path=path)
            raise ServiceError("Invalid JSON response", service=self.service_name, status_code=response.status_code) from e

        if response_model:
            return response_model.model_validate(data)
        return data

    async def request(
        self,
        method: str,
        path: str,
        response_model: Optional[Type[T]] = None,
        **kwargs,
    ) -> Union[T, Dict[str, Any], None]:
        """Execute request with retries inside the service's circuit breaker."""
        return await self.breaker.execute(
            lambda: retry(
                lambda: self._send(method, path, response_model=response_model, **kwargs),
                self._retry_options_for(method),
            )
        )

    async def get(self, path: str, params: Optional[Dict] = None, response_model: Optional[Type[T]] = None) -> Union[T, Dict, None]:
        return await self.request("GET", path, params=params, response_model=response_model)

    async def post(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None) -> Union[T, Dict, None]:
        return await self.request("POST", path, json=json, response_model=response_model)

    async def put(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None) -> Union[T, Dict, None]:
        return await self.request("PUT", path, json=json, response_model=response_model)

    async def patch(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None) -> Union[T, Dict, None]:
        return await self.request("PATCH", path, json=json, response_model=response_model)

    async def delete(self, path: str, response_model: Optional[Type[T]] = None) -> Union[T, Dict, None]:
        return await self.request("DELETE", path, response_model=response_model)

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a database RPC function (``POST /rest/v1/rpc/{function}``)."""
        return await self.request("POST", f"/rest/v1/rpc/{function}", json=params or {})
