"""Retry logic for YouTube Data API requests."""

import asyncio
import logging
from functools import wraps
from typing import TypeVar, Callable, Any, Awaitable, Optional, cast

from youtube_scraper.exceptions import FetchAttemptError, FetchExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")
AsyncFunc = Callable[..., Awaitable[T]]


def backoff_delay(base_delay: float, attempt_index: int) -> float:
    """
    Delay to wait after the failed attempt ``attempt_index`` (zero-based).

    The schedule is linear: ``base, 2*base, 3*base, ...``.
    """
    return base_delay * (1 + attempt_index)


def with_linear_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    prometheus_exporter=None,
) -> Callable[[AsyncFunc[T]], AsyncFunc[T]]:
    """
    Decorator for retrying async request functions with linear backoff.

    The wrapped coroutine signals a failed attempt by raising ``FetchAttemptError``;
    any other exception propagates immediately. Its first positional argument (or
    ``url`` keyword) names the target in the terminal ``FetchExhausted``.

    Args:
        max_attempts: Total number of attempts, including the first one
        base_delay: Delay in seconds after the first failed attempt
        prometheus_exporter: Optional Prometheus exporter for attempt metrics

    Returns:
        Decorator function
    """
    def decorator(func: AsyncFunc[T]) -> AsyncFunc[T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            target = kwargs.get("url", args[0] if args else func.__name__)
            last_reason: Optional[str] = None

            for attempt in range(max_attempts):
                try:
                    result = await func(*args, **kwargs)
                    if prometheus_exporter:
                        prometheus_exporter.record_fetch_attempt("success")
                    if attempt:
                        logger.info(f"Fetch succeeded on attempt {attempt + 1}/{max_attempts}")
                    return result

                except FetchAttemptError as e:
                    last_reason = e.reason
                    if prometheus_exporter:
                        prometheus_exporter.record_fetch_attempt("failure")
                    logger.warning(f"Attempt {attempt + 1}/{max_attempts} failed: {e.reason}")

                    if attempt < max_attempts - 1:
                        delay = backoff_delay(base_delay, attempt)
                        logger.info(f"Retrying in {delay:.2f}s")
                        await asyncio.sleep(delay)

            logger.error(f"Fetch failed after {max_attempts} attempts: {target}")
            raise FetchExhausted(str(target), max_attempts, last_reason or "no attempts made")

        return cast(AsyncFunc[T], wrapper)
    return decorator
