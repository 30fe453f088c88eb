"""
Minimum-interval rate limiter for the Reddit API.

Every request we send to Reddit, token requests included, must start at
least one second after the previous one. A single limiter instance is
shared by the credential cache and the content fetcher.
"""

import asyncio
import time
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class MinIntervalRateLimiter:
    """
    Spacing rate limiter for Reddit API requests.

    Callers are admitted one at a time; each waits until ``min_interval``
    seconds have passed since the previous admitted call started.

    Thread-safe using asyncio.Lock. Waiters are resumed in the order they
    reached the lock.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            min_interval: Minimum seconds between two admitted calls (default: 1.0)
            clock: Monotonic time source, overridable in tests
        """
        self.min_interval = min_interval
        self.clock = clock
        self.last_call: Optional[float] = None
        self.total_calls = 0
        self.total_wait_seconds = 0.0
        self.lock = asyncio.Lock()

        logger.info("rate_limiter_initialized", min_interval=min_interval)

    async def await_turn(self) -> None:
        """
        Wait until the next request may be sent, then claim the slot.

        The lock is held while sleeping so that two tasks can never both
        observe an elapsed interval and start together.

        Example:
            >>> limiter = MinIntervalRateLimiter(min_interval=1.0)
            >>> await limiter.await_turn()  # immediate
            >>> await limiter.await_turn()  # ~1 second later
        """
        async with self.lock:
            if self.last_call is not None:
                wait_time = self.last_call + self.min_interval - self.clock()
                if wait_time > 0:
                    logger.debug(
                        "rate_limit_wait",
                        wait_seconds=round(wait_time, 3),
                    )
                    self.total_wait_seconds += wait_time
                    await asyncio.sleep(wait_time)

            self.last_call = self.clock()
            self.total_calls += 1

    def seconds_until_ready(self) -> float:
        """
        Return how long a caller arriving now would have to wait.

        Ignores tasks already queued on the lock.
        """
        if self.last_call is None:
            return 0.0
        return max(0.0, self.last_call + self.min_interval - self.clock())

    async def reset(self) -> None:
        """
        Reset the rate limiter state.

        Useful for testing or manual intervention.
        """
        async with self.lock:
            self.last_call = None
            self.total_calls = 0
            self.total_wait_seconds = 0.0
            logger.info("rate_limiter_reset")

    def get_stats(self) -> dict[str, Any]:
        """
        Get current rate limiter statistics.

        Example:
            >>> limiter.get_stats()
            {'min_interval': 1.0, 'total_calls': 3, 'total_wait_seconds': 1.98,
             'seconds_until_ready': 0.42}
        """
        return {
            "min_interval": self.min_interval,
            "total_calls": self.total_calls,
            "total_wait_seconds": round(self.total_wait_seconds, 3),
            "seconds_until_ready": round(self.seconds_until_ready(), 3),
        }
