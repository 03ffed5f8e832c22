"""Fixed-interval rate limiting for sequential external calls."""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """Space successive calls at least ``interval`` seconds apart.

    The first ``acquire()`` returns immediately; each later one sleeps until
    ``interval`` has elapsed since the previous acquisition. Callers share a
    lock, so concurrent acquirers are serialized as well.
    """

    def __init__(self, interval: float, clock=time.monotonic, sleep=asyncio.sleep):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait for the next slot. Returns the number of seconds slept."""
        async with self._lock:
            waited = 0.0
            if self._last is not None and self.interval > 0:
                remaining = self.interval - (self._clock() - self._last)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last = self._clock()
            return waited

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False
