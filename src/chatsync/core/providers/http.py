"""
Async HTTP helpers with retry logic and exponential backoff.

Provider clients send every request through :func:`send_with_retry`, which
retries transient failures (5xx responses, timeouts, connection errors) and
gives up immediately on client errors (4xx). Each attempt is bounded by the
caller's timeout so an abandoned sync cycle never hangs on the network.

Configuration:
    - Default retries: 2 attempts
    - Default base delay: 0.5 seconds
    - Default multiplier: 2.0x per retry
    - Jitter: Random variance of ±20% added to delay
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 2)
        base_delay: Initial delay in seconds before first retry (default: 0.5)
        multiplier: Exponential backoff multiplier (default: 2.0)
        jitter: Whether to add jitter to delays (default: True)
        jitter_ratio: Random variance ratio for jitter (default: 0.2 = ±20%)
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        multiplier: float = 2.0,
        jitter: bool = True,
        jitter_ratio: float = 0.2,
    ) -> None:
        """
        Initialize retry configuration.

        Raises:
            ValueError: If parameters are invalid
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.jitter = jitter
        self.jitter_ratio = jitter_ratio

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt.

        Uses exponential backoff: delay = base_delay * (multiplier ^ attempt)

        Args:
            attempt: Retry attempt number (0-indexed)

        Returns:
            Delay in seconds before next retry
        """
        delay = self.base_delay * (self.multiplier**attempt)

        if self.jitter:
            variance = delay * self.jitter_ratio
            delay = delay + random.uniform(-variance, variance)

        return max(0.0, delay)


def is_retryable_status(status_code: int) -> bool:
    """5xx responses are worth retrying; everything else is final."""
    return 500 <= status_code < 600


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception represents a transient, retryable error.

    Retryable errors include timeouts, connection errors and other
    request-level failures. Anything that is not an httpx error is a
    programming error and is never retried.

    Args:
        exception: Exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    if isinstance(exception, httpx.HTTPStatusError):
        return is_retryable_status(exception.response.status_code)

    if isinstance(exception, (httpx.TimeoutException, httpx.RequestError)):
        return True

    return False


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retry: RetryConfig | None = None,
    timeout: float | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    Non-2xx responses are returned to the caller rather than raised; only
    5xx responses trigger a retry, and the last one is returned once the
    retries run out.

    Args:
        client: Shared async client
        method: HTTP method
        url: Request URL
        retry: Retry policy (defaults to :class:`RetryConfig` defaults)
        timeout: Per-attempt timeout in seconds
        **kwargs: Passed through to ``client.request``

    Returns:
        The final HTTP response

    Raises:
        httpx.TimeoutException: After max retries on timeout
        httpx.RequestError: After max retries on network errors
    """
    retry = retry or RetryConfig()

    for attempt in range(retry.max_retries + 1):
        try:
            response = await client.request(method, url, timeout=timeout, **kwargs)
        except httpx.HTTPError as e:
            if not is_retryable_error(e) or attempt >= retry.max_retries:
                logger.debug("%s %s failed on attempt %d: %s", method, url, attempt + 1, e)
                raise
            delay = retry.calculate_delay(attempt)
            logger.info(
                "%s %s: retry %d/%d after %.2fs due to: %s",
                method,
                url,
                attempt + 1,
                retry.max_retries,
                delay,
                e,
            )
            await asyncio.sleep(delay)
            continue

        if is_retryable_status(response.status_code) and attempt < retry.max_retries:
            delay = retry.calculate_delay(attempt)
            logger.info(
                "%s %s: retry %d/%d after %.2fs due to HTTP %d",
                method,
                url,
                attempt + 1,
                retry.max_retries,
                delay,
                response.status_code,
            )
            await asyncio.sleep(delay)
            continue

        return response

    raise RuntimeError("Retry loop completed without a response or exception")


__all__ = [
    "RetryConfig",
    "is_retryable_error",
    "is_retryable_status",
    "send_with_retry",
]
