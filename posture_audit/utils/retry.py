"""Retry utilities with exponential backoff."""

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import aiohttp


logger = logging.getLogger(__name__)

# Type variable for generic coroutine function signatures
F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


def exponential_backoff_retry(
    max_retries: int = 3,
    delays: list[int] | None = None,
) -> Callable[[F], F]:
    """Decorator for exponential backoff retry (2s, 4s, 8s) on coroutines.

    Retries on rate limits (429) and transient server errors (5xx) raised
    as ``aiohttp.ClientResponseError``. Only used for side-calls such as
    release-date and RDAP lookups; DNS queries are never retried.

    Args:
        max_retries: Maximum number of retry attempts (default: 3).
        delays: List of delay seconds between retries (default: [2, 4, 8]).

    Returns:
        Callable: Decorated coroutine function with retry logic.

    Examples:
        >>> @exponential_backoff_retry()
        ... async def call_api():
        ...     pass
    """
    if delays is None:
        delays = [2, 4, 8]

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except aiohttp.ClientResponseError as e:
                    if e.status in RETRYABLE_STATUSES and attempt < max_retries:
                        delay = delays[min(attempt, len(delays) - 1)]
                        logger.warning(
                            f"HTTP {e.status} from {func.__name__}, retrying in {delay}s..."
                        )
                        await asyncio.sleep(delay)
                        continue
                    # Non-retryable error or retries exhausted
                    raise
            raise RuntimeError(
                f"Max retries ({max_retries}) exhausted for {func.__name__}"
            )

        return wrapper  # type: ignore

    return decorator
