"""Async sliding-window rate limiter shared by review sources and LLM providers."""

import asyncio
import logging
import time
from collections import deque
from typing import Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window limiter over a per-minute (and optional per-hour) budget.

    Usage::

        limiter = RateLimiter(requests_per_minute=30, name="yelp")

        async with limiter:
            await client.get(...)
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_hour: Optional[int] = None,
        name: str = "default",
    ):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.name = name
        self._rpm = requests_per_minute
        self._rph = requests_per_hour
        self._minute: deque[float] = deque()
        self._hour: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _expire(self, now: float) -> None:
        while self._minute and now - self._minute[0] >= 60.0:
            self._minute.popleft()
        while self._hour and now - self._hour[0] >= 3600.0:
            self._hour.popleft()

    def wait_time(self) -> float:
        """Seconds until the next request would be admitted (0 when free)."""
        now = time.monotonic()
        self._expire(now)
        wait = 0.0
        if len(self._minute) >= self._rpm:
            wait = max(wait, 60.0 - (now - self._minute[0]))
        if self._rph and len(self._hour) >= self._rph:
            wait = max(wait, 3600.0 - (now - self._hour[0]))
        return wait

    async def acquire(self) -> None:
        # The lock is released before sleeping so it is never held across
        # the wait; the slot is re-checked after waking.
        while True:
            async with self._lock:
                wait = self.wait_time()
                if wait <= 0:
                    now = time.monotonic()
                    self._minute.append(now)
                    if self._rph:
                        self._hour.append(now)
                    return
            logger.debug("RateLimiter(%s) sleeping %.2fs", self.name, wait)
            await asyncio.sleep(wait)

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *args):
        pass

    @property
    def requests_in_last_minute(self) -> int:
        self._expire(time.monotonic())
        return len(self._minute)
