"""
Retry strategy with exponential backoff and timeout-bounded HTTP calls.

Retries are local to a single provider attempt. Falling back to a different
provider is the orchestrator's job.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from loguru import logger

from skyfetch.services.errors import (
    RETRYABLE_HTTP_CODES,
    WeatherError,
    WeatherErrorCode,
)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff configuration. All delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 1.0


DEFAULT_RETRY_CONFIG = RetryConfig()


def calculate_backoff_delay(
    attempt: int,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
) -> float:
    """min(max_delay, base_delay * 2^attempt) + uniform(0, jitter)"""
    exponential = config.base_delay * (2**attempt)
    capped = min(config.max_delay, exponential)
    return capped + random.uniform(0, config.jitter)


def _status_of(error: Any) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status_code", "status"):
        status = getattr(error, attr, None)
        if isinstance(status, int):
            return status
    return None


def is_retryable_error(error: Any) -> bool:
    """Decide whether a failure is worth another attempt."""
    if isinstance(error, WeatherError):
        return error.is_retryable

    # Connection refused/reset, DNS failures and the like
    if isinstance(error, httpx.TransportError):
        return True

    status = _status_of(error)
    if status is not None:
        return status in RETRYABLE_HTTP_CODES

    return False


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
) -> T:
    """
    Await operation, retrying retryable failures with backoff.

    Non-retryable errors are re-raised immediately. After max_retries
    retries the last error is re-raised.
    """
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_retryable_error(e) or attempt >= config.max_retries:
                raise

            delay = calculate_backoff_delay(attempt, config)
            logger.debug(
                f"Attempt {attempt + 1}/{config.max_retries + 1} failed ({e}), "
                f"retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1


async def fetch_with_timeout(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """
    GET url, cancelling the request after timeout seconds.

    Raises:
        WeatherError: TIMEOUT (retryable) when the deadline passes
    """
    try:
        return await asyncio.wait_for(
            client.get(url, params=params, headers=headers, timeout=timeout),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise WeatherError(
            WeatherErrorCode.TIMEOUT,
            f"Request timed out after {timeout}s",
            is_retryable=True,
        ) from e
