"""Retry with exponential backoff for feed, page and LLM requests."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_HTTP_CODES = {429, 500, 502, 503, 504}
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)
# Matched by class name so provider SDKs stay optional imports here.
RETRYABLE_SDK_ERRORS = {
    "RateLimitError",
    "OverloadedError",
    "InternalServerError",
    "APIConnectionError",
    "APITimeoutError",
}


def is_retryable(exc: BaseException) -> bool:
    """Whether an exception is a transient failure worth another attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_HTTP_CODES
    if isinstance(exc, RETRYABLE_EXCEPTIONS):
        return True
    return type(exc).__name__ in RETRYABLE_SDK_ERRORS


def _backoff_delay(
    exc: BaseException, attempt: int, base_delay: float, max_delay: float,
) -> float:
    if isinstance(exc, httpx.HTTPStatusError):
        retry_after = exc.response.headers.get("retry-after")
        if retry_after:
            try:
                return min(float(retry_after), max_delay)
            except ValueError:
                pass
    return min(base_delay * (2**attempt), max_delay)


async def retry_async(
    fn,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    **kwargs,
):
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    Transient means httpx timeouts and connection errors, HTTP 429/5xx
    (honouring Retry-After), and SDK rate-limit/overload errors. Anything
    else is raised on the first occurrence; the last transient error is
    raised once ``max_retries`` is exhausted.
    """
    for attempt in range(max_retries + 1):
        try:
            return await fn(*args, **kwargs)
        except Exception as exc:
            if not is_retryable(exc) or attempt == max_retries:
                raise
            delay = _backoff_delay(exc, attempt, base_delay, max_delay)
            logger.warning(
                "Retry %d/%d after %s: %s (waiting %.1fs)",
                attempt + 1, max_retries, type(exc).__name__, exc, delay,
            )
            await asyncio.sleep(delay)
