"""HTTP helpers with retry/backoff for the Go ERP and email provider."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential delay for a zero-based attempt, with up to 50% jitter."""
    delay = min(max_delay, base_delay * (2**attempt))
    if delay:
        delay += random.uniform(0, delay / 2)
    return delay


async def request_with_retries(
    request_fn: Callable[[], Awaitable[httpx.Response]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_statuses: frozenset[int] | set[int] | None = None,
    label: str = "HTTP request",
) -> httpx.Response:
    """
    Execute an HTTP request with exponential backoff retries.

    Transport errors are retried and re-raised after the last attempt.
    Retryable statuses are retried; the final response is returned as-is so
    the caller maps it to a domain error.
    """
    statuses = retry_statuses if retry_statuses is not None else DEFAULT_RETRY_STATUSES
    attempts = max(1, max_attempts)

    for attempt in range(attempts):
        last_attempt = attempt == attempts - 1
        try:
            response = await request_fn()
        except httpx.RequestError as exc:
            if last_attempt:
                raise
            logger.warning("%s failed (attempt %s/%s), retrying", label, attempt + 1, attempts, exc_info=exc)
        else:
            if response.status_code not in statuses or last_attempt:
                return response
            logger.warning(
                "%s returned %s (attempt %s/%s), retrying",
                label,
                response.status_code,
                attempt + 1,
                attempts,
            )

        delay = backoff_delay(attempt, base_delay, max_delay)
        if delay:
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable: retry loop exited without a response")
