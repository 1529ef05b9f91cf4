"""Implementation of a rate limiter.

Controls the frequency of outgoing requests to stay under the Figma API quota.
Uses a sliding window over the timestamps of recent requests.
"""

import time
import asyncio
import logging
from collections import deque
from typing import Deque, Optional

from figmadl.domain.events.api_events import RequestDeferred
from figmadl.domain.events.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 30          # Max 30 requests...
DEFAULT_TIME_WINDOW_SECONDS = 60   # ...per 60 seconds
DEFAULT_SAFETY_MARGIN_SECONDS = 0.1


class RateLimiter:
    """Simple sliding window rate limiter."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        safety_margin: float = DEFAULT_SAFETY_MARGIN_SECONDS,
        events: Optional[EventDispatcher] = None,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in the time window.
            time_window: The time window in seconds.
            safety_margin: Extra seconds added to every computed wait.
            events: Optional dispatcher notified when a caller is deferred.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.time_window = time_window
        self.safety_margin = safety_margin
        self.timestamps: Deque[float] = deque()
        self._events = events or EventDispatcher()
        logger.debug(f"RateLimiter initialized: {max_requests} requests / {time_window} seconds")

    def _cleanup_timestamps(self, now: float) -> None:
        """Removes timestamps older than the time window."""
        while self.timestamps and now - self.timestamps[0] > self.time_window:
            self.timestamps.popleft()

    async def acquire(self) -> None:
        """Waits until one more request fits in the window, then records it.

        The check and the append happen with no suspension point in between,
        so concurrent callers on the same event loop cannot both claim the
        last slot.
        """
        while True:
            now = time.monotonic()
            self._cleanup_timestamps(now)
            if len(self.timestamps) < self.max_requests:
                self.timestamps.append(now)
                logger.debug(f"Rate limit permission granted ({len(self.timestamps)}/{self.max_requests}).")
                return

            oldest_timestamp = self.timestamps[0]
            wait_time = self.time_window - (now - oldest_timestamp) + self.safety_margin
            wait_time = max(0.0, wait_time)
            logger.info(f"Rate limit reached. Waiting for {wait_time:.2f} seconds.")
            self._events.dispatch(RequestDeferred(
                wait_time_seconds=wait_time,
                requests_in_window=len(self.timestamps),
            ))
            await asyncio.sleep(wait_time)
            # Loop again to re-check condition after waiting

    def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made."""
        now = time.monotonic()
        self._cleanup_timestamps(now)
        if len(self.timestamps) < self.max_requests:
            return 0.0
        return max(0.0, self.time_window - (now - self.timestamps[0]) + self.safety_margin)
