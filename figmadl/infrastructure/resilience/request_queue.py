"""Bounded queue for asynchronous work units.

At most ``concurrency`` tasks run at once, and a task cannot start until
``interval`` seconds have passed since the previous task started. This pacing
sits on top of (and independent from) the RateLimiter used inside task bodies.
Tasks start in FIFO order; a failing task never affects its siblings.
"""

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from figmadl.domain.events.api_events import TaskAdmitted, TaskCompleted
from figmadl.domain.events.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 2
DEFAULT_INTERVAL_SECONDS = 1.0

TaskFactory = Callable[[], Awaitable[Any]]


class ConcurrencyBoundedQueue:
    """FIFO work queue with a concurrency ceiling and a minimum start interval."""

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        events: Optional[EventDispatcher] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.interval = interval
        self._events = events or EventDispatcher()
        self._slots = asyncio.Semaphore(concurrency)
        self._start_lock = asyncio.Lock()
        self._last_start: Optional[float] = None
        self._running = 0
        self._task_ids = itertools.count(1)
        self._outstanding: Set[asyncio.Task] = set()
        logger.debug(f"ConcurrencyBoundedQueue initialized: concurrency={concurrency}, interval={interval}s")

    @property
    def running(self) -> int:
        """Number of tasks currently executing."""
        return self._running

    @property
    def size(self) -> int:
        """Number of tasks submitted but not yet settled (waiting or running)."""
        return len(self._outstanding)

    def add(self, task: TaskFactory) -> "asyncio.Task[Any]":
        """Admits a unit of work.

        Args:
            task: Zero-argument callable returning an awaitable. It is only
                called once the queue lets the task start.

        Returns:
            An asyncio Task resolving to the work's result, or raising its error.
            Only the caller holding this Task observes the outcome.
        """
        task_id = next(self._task_ids)
        scheduled = asyncio.create_task(self._run(task_id, task), name=f"figmadl-queue-{task_id}")
        self._outstanding.add(scheduled)
        scheduled.add_done_callback(self._outstanding.discard)
        return scheduled

    async def join(self) -> None:
        """Waits until every task submitted so far has settled."""
        while self._outstanding:
            await asyncio.gather(*list(self._outstanding), return_exceptions=True)

    async def _run(self, task_id: int, task: TaskFactory) -> Any:
        async with self._slots:
            await self._wait_for_start_slot()
            self._running += 1
            logger.debug(f"Task {task_id} admitted ({self._running}/{self.concurrency} running)")
            self._events.dispatch(TaskAdmitted(task_id=task_id, running=self._running))
            succeeded = False
            try:
                result = await task()
                succeeded = True
                return result
            finally:
                self._running -= 1
                logger.debug(f"Task {task_id} completed (succeeded={succeeded})")
                self._events.dispatch(TaskCompleted(task_id=task_id, running=self._running, succeeded=succeeded))

    async def _wait_for_start_slot(self) -> None:
        """Enforces the minimum interval between consecutive task starts."""
        async with self._start_lock:
            loop = asyncio.get_running_loop()
            if self._last_start is not None:
                wait_time = self._last_start + self.interval - loop.time()
                if wait_time > 0:
                    await asyncio.sleep(wait_time)
            self._last_start = loop.time()
