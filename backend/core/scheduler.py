"""
Rate-limited task queue for prompt synthesis.

Every task added to the queue first reserves an admission slot from the
RateLimiter, then runs to completion. Any number of admitted tasks may be in
flight at once; only the rate at which they start is limited.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from adapter.rate_limiter import RateLimitConfig, RateLimiter

logger = logging.getLogger(__name__)

SYNTHESIS_CATEGORY = "grok_synthesis"

# 10 admissions per 2 seconds (300 requests per minute)
DEFAULT_SYNTHESIS_LIMIT = RateLimitConfig(
    requests_per_window=10,
    window_seconds=2.0,
    strategy="sliding_window"
)


class RateLimitedQueue:
    """
    Queue of coroutine tasks admitted through a RateLimiter.

    Usage:
        queue = RateLimitedQueue()
        queue.add(lambda: do_work(item))
        ...
        await queue.on_idle()   # every added task has settled

    Failures are logged and counted; they never propagate out of the queue.
    There is no cancellation: on_idle waits for everything that was added.
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        category: str = SYNTHESIS_CATEGORY,
        limit: RateLimitConfig = DEFAULT_SYNTHESIS_LIMIT,
    ):
        self.rate_limiter = rate_limiter or RateLimiter()
        self.category = category
        if category not in self.rate_limiter.configs:
            self.rate_limiter.configure_limit(category, limit)

        self._tasks: Set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

        self.added = 0
        self.admitted = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        """Tasks waiting for admission or still running."""
        return len(self._tasks)

    def add(self, task_fn: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Schedule ``task_fn()`` to run once an admission slot is available."""
        task = asyncio.create_task(self._run(task_fn))
        self._tasks.add(task)
        self._idle.clear()
        self.added += 1
        task.add_done_callback(self._on_done)
        return task

    async def _run(self, task_fn: Callable[[], Awaitable[None]]) -> None:
        await self.rate_limiter.acquire(self.category)
        self.admitted += 1
        try:
            await task_fn()
        except Exception as e:
            self.failed += 1
            logger.error(f"Queued task failed: {e}", exc_info=True)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not self._tasks:
            self._idle.set()

    async def on_idle(self) -> None:
        """Wait until every added task has settled."""
        await self._idle.wait()


__all__ = ["RateLimitedQueue", "SYNTHESIS_CATEGORY", "DEFAULT_SYNTHESIS_LIMIT"]
