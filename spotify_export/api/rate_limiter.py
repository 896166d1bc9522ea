"""
Provides an adaptive rate limiter to avoid 429 "Too Many Requests" errors from the API.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Paces outgoing calls and slows down when Spotify answers 429.

    A 429 halves the call rate and, when the response carries a
    'Retry-After' header, holds every call until that delay has passed.
    The rejected call itself is not repeated.
    """

    def __init__(
        self, initial_calls_per_second: float = 5.0, max_calls_per_second: float = 10.0
    ):
        """
        Args:
            initial_calls_per_second: The starting rate of calls per second.
            max_calls_per_second: The maximum rate to recover to.
        """
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time = 0.0
        self._last_429_time = 0.0
        self._blocked_until = 0.0
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def on_429(self, retry_after: float | None = None) -> None:
        """Halves the request rate and honours the server's Retry-After hint."""
        async with self._lock:
            self._rate = max(1.0, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            self._last_429_time = time.monotonic()
            if retry_after:
                self._blocked_until = self._last_429_time + retry_after
            log.warning(
                f"[yellow]Rate limit hit. New rate: {self._rate:.1f} calls/s"
                + (f", pausing {retry_after:.0f}s" if retry_after else "")
                + "[/yellow]"
            )

    async def acquire(self) -> None:
        """
        Waits if necessary to respect the current rate limit before allowing a call to proceed.
        """
        async with self._lock:
            now = time.monotonic()
            if now < self._blocked_until:
                await asyncio.sleep(self._blocked_until - now)

            # Recover slowly once no 429 has been seen for a minute
            if time.monotonic() - self._last_429_time > 60:
                self._rate = min(self._max_rate, self._rate * 1.05)
                self._min_interval = 1.0 / self._rate

            time_since_last = time.monotonic() - self._last_call_time
            if time_since_last < self._min_interval:
                await asyncio.sleep(self._min_interval - time_since_last)

            self._last_call_time = time.monotonic()
