"""
Unit Tests for the HTTP Layer
=============================
Uses httpx.MockTransport so no network is involved.
"""

import json

import httpx
import pytest
from pydantic import BaseModel

from mejohnc_core.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitState,
)
from mejohnc_core.http import (
    AuthenticationError,
    HTTPStatusFailure,
    NotFoundError,
    RateLimitedError,
    ResilientClient,
    ServiceError,
    ServiceTimeoutError,
    ServiceUnavailableError,
    retry_fetch,
)
from mejohnc_core.config import RetrySettings, ServiceSettings
from mejohnc_core.metrics import RESILIENCE_REGISTRY
from mejohnc_core.retry import RetryOptions


def fast(**kwargs) -> RetryOptions:
    kwargs.setdefault("initial_delay", 0.001)
    kwargs.setdefault("jitter", False)
    return RetryOptions(**kwargs)


class ScriptedTransport:
    """Replays responses (or exceptions) in order, repeating the last one."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        return httpx.Response(step.status_code, headers=step.headers, content=step.content)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class Post(BaseModel):
    id: int
    title: str


class TestRetryFetch:
    """Tests for retry_fetch."""

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        script = ScriptedTransport(
            httpx.Response(503),
            httpx.Response(503),
            httpx.Response(200, json={"ok": True}),
        )

        async with httpx.AsyncClient(transport=script.transport()) as client:
            response = await retry_fetch(client, "GET", "https://api.example.com/status", fast())

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert script.calls == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_returned(self):
        """404 is a normal response, not a retry trigger."""
        script = ScriptedTransport(httpx.Response(404))

        async with httpx.AsyncClient(transport=script.transport()) as client:
            response = await retry_fetch(client, "GET", "https://api.example.com/missing", fast())

        assert response.status_code == 404
        assert script.calls == 1

    @pytest.mark.asyncio
    async def test_rate_limit_always_retried(self):
        """429 retries even when the caller's predicate refuses everything."""
        script = ScriptedTransport(httpx.Response(429), httpx.Response(200))

        async with httpx.AsyncClient(transport=script.transport()) as client:
            response = await retry_fetch(
                client,
                "GET",
                "https://api.example.com/feed",
                fast(is_retryable=lambda e: False),
            )

        assert response.status_code == 200
        assert script.calls == 2

    @pytest.mark.asyncio
    async def test_caller_predicate_applies_to_other_statuses(self):
        script = ScriptedTransport(httpx.Response(502), httpx.Response(200))

        async with httpx.AsyncClient(transport=script.transport()) as client:
            with pytest.raises(HTTPStatusFailure):
                await retry_fetch(
                    client,
                    "GET",
                    "https://api.example.com/feed",
                    fast(is_retryable=lambda e: False),
                )

        assert script.calls == 1

    @pytest.mark.asyncio
    async def test_persistent_failure_raises(self):
        script = ScriptedTransport(httpx.Response(500, text="boom"))

        async with httpx.AsyncClient(transport=script.transport()) as client:
            with pytest.raises(HTTPStatusFailure) as exc_info:
                await retry_fetch(client, "POST", "https://api.example.com/jobs", fast(max_retries=1), json={})

        assert script.calls == 2
        assert exc_info.value.status_code == 500
        assert exc_info.value.service == "api.example.com"
        assert exc_info.value.details == "boom"

    @pytest.mark.asyncio
    async def test_network_errors_retried(self):
        script = ScriptedTransport(
            httpx.ConnectError("connection refused"),
            httpx.Response(200),
        )

        async with httpx.AsyncClient(transport=script.transport()) as client:
            response = await retry_fetch(client, "GET", "https://api.example.com/", fast())

        assert response.status_code == 200
        assert script.calls == 2


class TestResilientClient:
    """Tests for ResilientClient."""

    def make_client(self, script, clock, registry=None, **kwargs) -> ResilientClient:
        kwargs.setdefault("retry_options", fast(max_retries=2))
        return ResilientClient(
            base_url="https://project.supabase.co/",
            service_name="supabase",
            registry=registry if registry is not None else CircuitBreakerRegistry(clock=clock),
            api_key="anon-key",
            transport=script.transport(),
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_get_json(self, clock):
        script = ScriptedTransport(httpx.Response(200, json=[{"id": 1}]))

        async with self.make_client(script, clock) as client:
            rows = await client.get("/rest/v1/posts", params={"select": "*"})

        assert rows == [{"id": 1}]
        request = script.requests[0]
        assert request.url.path == "/rest/v1/posts"
        assert request.url.params["select"] == "*"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"
        assert request.headers["user-agent"] == "mejohnc-core/supabase"

    @pytest.mark.asyncio
    async def test_response_model(self, clock):
        script = ScriptedTransport(httpx.Response(200, json={"id": 7, "title": "Hello"}))

        async with self.make_client(script, clock) as client:
            post = await client.get("/rest/v1/posts/7", response_model=Post)

        assert post == Post(id=7, title="Hello")

    @pytest.mark.asyncio
    async def test_empty_response(self, clock):
        script = ScriptedTransport(httpx.Response(204))

        async with self.make_client(script, clock) as client:
            assert await client.delete("/rest/v1/posts?id=eq.7") is None

    @pytest.mark.asyncio
    async def test_invalid_json(self, clock):
        script = ScriptedTransport(httpx.Response(200, content=b"<html>"))

        async with self.make_client(script, clock) as client:
            with pytest.raises(ServiceError, match="Invalid JSON"):
                await client.get("/rest/v1/posts")

        assert script.calls == 1

    @pytest.mark.asyncio
    async def test_server_errors_retried(self, clock):
        script = ScriptedTransport(
            httpx.Response(503),
            httpx.Response(200, json={"id": 1}),
        )

        async with self.make_client(script, clock) as client:
            assert await client.post("/rest/v1/posts", json={"title": "x"}) == {"id": 1}

        assert script.calls == 2
        assert client.breaker.get_stats().successes == 1

    @pytest.mark.asyncio
    async def test_not_found_not_retried(self, clock):
        script = ScriptedTransport(httpx.Response(404))

        async with self.make_client(script, clock) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.get("/rest/v1/posts/99")

        assert script.calls == 1
        assert exc_info.value.status_code == 404
        assert exc_info.value.service == "supabase"

    @pytest.mark.asyncio
    async def test_auth_errors(self, clock):
        script = ScriptedTransport(httpx.Response(401))

        async with self.make_client(script, clock) as client:
            with pytest.raises(AuthenticationError):
                await client.get("/rest/v1/secrets")

        assert script.calls == 1

    @pytest.mark.asyncio
    async def test_rate_limited(self, clock):
        script = ScriptedTransport(httpx.Response(429, headers={"Retry-After": "12"}))

        async with self.make_client(script, clock, retry_options=fast(max_retries=0)) as client:
            with pytest.raises(RateLimitedError) as exc_info:
                await client.get("/rest/v1/posts")

        assert exc_info.value.retry_after == 12.0
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_timeout_mapped(self, clock):
        script = ScriptedTransport(httpx.ReadTimeout("timed out"))

        async with self.make_client(script, clock, retry_options=fast(max_retries=1)) as client:
            with pytest.raises(ServiceTimeoutError):
                await client.get("/rest/v1/posts")

        assert script.calls == 2

    @pytest.mark.asyncio
    async def test_breaker_opens_and_rejects(self, clock):
        """Each exhausted retry counts once; an open breaker skips the network."""
        registry = CircuitBreakerRegistry(clock=clock)
        registry.get("supabase", CircuitBreakerConfig(failure_threshold=2))
        script = ScriptedTransport(httpx.Response(500))

        async with self.make_client(script, clock, registry=registry, retry_options=fast(max_retries=1)) as client:
            for _ in range(2):
                with pytest.raises(ServiceUnavailableError):
                    await client.get("/rest/v1/posts")
            assert client.breaker.state == CircuitState.OPEN
            assert script.calls == 4

            with pytest.raises(CircuitOpenError):
                await client.get("/rest/v1/posts")

        assert script.calls == 4

    @pytest.mark.asyncio
    async def test_rpc(self, clock):
        script = ScriptedTransport(httpx.Response(200, json=42))

        async with self.make_client(script, clock) as client:
            result = await client.rpc("count_posts", {"author": "me"})

        assert result == 42
        request = script.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/rpc/count_posts"
        assert json.loads(request.content) == {"author": "me"}

    @pytest.mark.asyncio
    async def test_custom_breaker_name(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        script = ScriptedTransport(httpx.Response(200, json={}))

        client = self.make_client(script, clock, registry=registry, breaker_name="external-api")
        await client.get("/")
        await client.aclose()

        assert client.breaker is registry.find("external-api")

    @pytest.mark.asyncio
    async def test_retries_labelled_by_service_and_method(self, clock):
        def recorded(operation):
            return RESILIENCE_REGISTRY.get_sample_value("retry_attempts_total", {"operation": operation}) or 0.0

        before_get = recorded("supabase:GET")
        before_post = recorded("supabase:POST")
        script = ScriptedTransport(httpx.Response(503), httpx.Response(200, json={}))

        async with self.make_client(script, clock) as client:
            await client.get("/rest/v1/posts")

        assert recorded("supabase:GET") - before_get == 1
        assert recorded("supabase:POST") == before_post


class TestClientFromSettings:
    """Tests for ResilientClient.from_settings."""

    @pytest.mark.asyncio
    async def test_builds_backend_client(self, clock):
        settings = ServiceSettings(
            supabase_url="https://project.supabase.co",
            supabase_anon_key="anon-key",
            http_timeout=2.5,
            retry=RetrySettings(max_retries=1, initial_delay=0.001, max_delay=0.01, backoff_multiplier=2.0, jitter=False),
        )
        registry = CircuitBreakerRegistry(clock=clock)
        script = ScriptedTransport(httpx.Response(500), httpx.Response(200, json={"ok": True}))

        async with ResilientClient.from_settings(settings, registry, transport=script.transport()) as client:
            assert await client.get("/rest/v1/health") == {"ok": True}

        assert client.breaker is registry.find("supabase")
        assert client.retry_options.max_retries == 1
        assert client.client.timeout.read == 2.5
        request = script.requests[0]
        assert request.url.host == "project.supabase.co"
        assert request.headers["apikey"] == "anon-key"
        assert script.calls == 2

    def test_missing_key_sends_no_auth(self, clock):
        settings = ServiceSettings(supabase_anon_key="")

        client = ResilientClient.from_settings(settings, CircuitBreakerRegistry(clock=clock))

        assert "apikey" not in client.client.headers
        assert "authorization" not in client.client.headers
