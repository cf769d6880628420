"""Throttling for outbound comment page requests."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    A single tick source shared by every request that must be throttled.

    The first call to ``wait`` returns immediately; each later call returns no
    sooner than ``interval_sec`` after the previous one returned, however many
    callers share the limiter.
    """

    def __init__(
        self,
        interval_sec: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the rate limiter.

        Args:
            interval_sec: Minimum spacing between ticks in seconds
            clock: Monotonic time source
            sleep: Coroutine function used to wait
        """
        if interval_sec < 0:
            raise ValueError("interval_sec must not be negative")
        self.interval_sec = interval_sec
        self._clock = clock
        self._sleep = sleep
        self._last_tick: Optional[float] = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Block until the next tick is due."""
        async with self._lock:
            now = self._clock()
            if self._last_tick is not None:
                delay = self._last_tick + self.interval_sec - now
                if delay > 0:
                    logger.debug(f"Throttling request for {delay:.2f}s")
                    await self._sleep(delay)
                    now = self._clock()
            self._last_tick = now
