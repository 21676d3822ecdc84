"""Per-minute request pacing for upstream market data calls."""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

from trader.logging import get_logger

logger = get_logger(__name__)

_WINDOW_SECONDS = 60.0


class ApiRateLimiter:
    """Sliding one-minute window limiter.

    ``acquire()`` returns immediately while fewer than ``calls_per_minute``
    calls were made in the last 60 seconds, otherwise it sleeps until the
    oldest call leaves the window.

    Args:
        calls_per_minute: Maximum calls allowed per rolling minute.
        clock: Monotonic time source (injectable for tests).
        sleep: Async sleep function (injectable for tests).
    """

    def __init__(
        self,
        calls_per_minute: int = 100,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if calls_per_minute <= 0:
            raise ValueError("calls_per_minute must be positive")
        self._limit = calls_per_minute
        self._clock = clock
        self._sleep = sleep
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def calls_in_window(self) -> int:
        self._evict(self._clock())
        return len(self._calls)

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= _WINDOW_SECONDS:
            self._calls.popleft()

    async def acquire(self) -> None:
        """Wait for a free slot, then record the call."""
        async with self._lock:
            now = self._clock()
            self._evict(now)

            if len(self._calls) >= self._limit:
                wait = _WINDOW_SECONDS - (now - self._calls[0])
                logger.info("rate_limit_wait", wait_seconds=round(wait, 2), limit=self._limit)
                await self._sleep(wait)
                now = self._clock()
                self._evict(now)

            self._calls.append(now)
