"""Rate limiting for outbound calls to shared public APIs."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass


@dataclass
class RetryAfter:
    """How long a caller had to wait for its slot."""

    seconds: float


class IntervalRateLimiter:
    """Spaces calls at least `1 / requests_per_sec` seconds apart.

    Callers queue on an asyncio lock, so concurrent acquirers are served one
    at a time in arrival order.
    """

    def __init__(
        self,
        requests_per_sec: float,
        clock: Callable[[], float] | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize rate limiter.

        Args:
            requests_per_sec: Allowed request rate (<= 0 disables limiting)
            clock: Monotonic clock (default: time.monotonic)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self._interval = 1.0 / requests_per_sec if requests_per_sec > 0 else 0.0
        self._clock = clock or time.monotonic
        self._sleep = sleep_fn or asyncio.sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    async def acquire(self) -> RetryAfter | None:
        """Wait until the next slot is free.

        Returns:
            RetryAfter with the time waited, or None if no wait was needed
        """
        async with self._lock:
            waited: RetryAfter | None = None
            now = self._clock()
            if self._last_call is not None and self._interval > 0:
                wait = self._last_call + self._interval - now
                if wait > 0:
                    await self._sleep(wait)
                    waited = RetryAfter(seconds=wait)
                    now = max(self._clock(), self._last_call + self._interval)
            self._last_call = now
            return waited
