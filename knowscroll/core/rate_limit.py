"""Outbound request rate limiting.

One limiter instance is shared by every provider call in the process, so it
must be constructed once and injected into the transport.
"""

import asyncio
import time
from collections import deque

from knowscroll.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter.

    Allows at most ``max_requests`` acquisitions in any window of
    ``per_seconds``. Waiters are served one at a time under an asyncio lock,
    which keeps the window consistent when many fetchers and many
    aggregation calls share the same instance.
    """

    def __init__(self, max_requests: int, per_seconds: float) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if per_seconds <= 0:
            raise ValueError("per_seconds must be > 0")

        self.max_requests = max_requests
        self.per_seconds = per_seconds
        self._request_times: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.per_seconds
        while self._request_times and self._request_times[0] <= cutoff:
            self._request_times.popleft()

    async def acquire(self) -> None:
        """Wait until a request slot is free, then claim it."""
        async with self._lock:
            while True:
                now = time.monotonic()
                self._prune(now)

                if len(self._request_times) < self.max_requests:
                    self._request_times.append(now)
                    return

                wait_seconds = self._request_times[0] + self.per_seconds - now
                logger.bind(wait_seconds=round(wait_seconds, 3)).debug("rate_limit_wait")
                await asyncio.sleep(wait_seconds)

    @property
    def available(self) -> int:
        """Slots free in the current window."""
        self._prune(time.monotonic())
        return self.max_requests - len(self._request_times)


class NullRateLimiter(RateLimiter):
    """Limiter that never waits."""

    def __init__(self) -> None:
        super().__init__(max_requests=1, per_seconds=1.0)

    async def acquire(self) -> None:
        return None

    @property
    def available(self) -> int:
        return self.max_requests
