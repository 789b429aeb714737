"""
Retrying HTTP Requests
======================
Runs a single httpx request through the retry engine.
"""

from dataclasses import replace
from typing import Any, Optional

import httpx

from ..retry import RetryOptions, retry
from ..retry.policy import get_status_code, is_retryable_error
from .exceptions import HTTPStatusFailure


def _should_raise(status_code: int) -> bool:
    return status_code in (408, 429) or status_code >= 500


async def retry_fetch(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    retry_options: Optional[RetryOptions] = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    Responses with status 408, 429 or >= 500 are raised as
    HTTPStatusFailure so the retry policy can act on them. Rate-limited
    (429) responses are always retried. Any other response, including
    other 4xx codes, is returned as-is.

    Raises:
        HTTPStatusFailure: If the final attempt still returned a retryable status
    """
    options = retry_options or RetryOptions()
    base_predicate = options.is_retryable or is_retryable_error

    def is_retryable(error: BaseException) -> bool:
        if get_status_code(error) == 429:
            return True
        return base_predicate(error)

    async def send() -> httpx.Response:
        response = await client.request(method, url, **kwargs)
        if _should_raise(response.status_code):
            raise HTTPStatusFailure(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                service=response.request.url.host,
                status_code=response.status_code,
                details=response.text,
            )
        return response

    return await retry(send, replace(options, is_retryable=is_retryable))
