"""
Retry Wrappers
==============
Decorator and explicit composition wrappers around ``retry``.
"""

from dataclasses import replace
from functools import wraps
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .backoff import RetryOptions, retry

T = TypeVar("T")


def with_retry(options: Optional[RetryOptions] = None):
    """
    Decorator for retry with exponential backoff.

    Usage:
        @with_retry(RetryOptions(max_retries=5))
        async def fetch_posts():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        opts = options or RetryOptions()
        if opts.name is None:
            opts = replace(opts, name=func.__qualname__)

        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry(lambda: func(*args, **kwargs), opts)
        return wrapper
    return decorator


class RetryingOperation(Generic[T]):
    """
    An operation bound to its retry options.

    Example:
        load_contacts = RetryingOperation(fetch_contacts, RetryOptions(max_retries=2))
        contacts = await load_contacts()
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[T]],
        options: Optional[RetryOptions] = None,
    ):
        self.operation = operation
        self.options = options or RetryOptions()

    async def run(self) -> T:
        return await retry(self.operation, self.options)

    def __call__(self) -> Awaitable[T]:
        return self.run()
