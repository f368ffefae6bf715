"""
Admission rate limiter for calls to the prompt generation API.

A slot is reserved per call with ``await limiter.acquire(category)``. At most
``requests_per_window`` admissions are granted per ``window_seconds``; callers
beyond the budget wait until the window replenishes. This limits how many calls
*start* per window, not how many are in flight.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, Literal, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for a specific rate limit."""
    requests_per_window: int
    window_seconds: float
    strategy: Literal["sliding_window", "fixed_window"] = "sliding_window"

    def __post_init__(self) -> None:
        if self.requests_per_window < 1:
            raise ValueError("requests_per_window must be at least 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")


class RateLimiter:
    """
    Per-category admission limiter for asyncio code.

    Strategies:
    - sliding_window: never more than N admissions within any window-length span
    - fixed_window: N admissions per window, the window starting at the first
      admission after the previous one expired

    Admissions within a category are granted in arrival order.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep

        # category -> admission timestamps inside the current sliding window
        self.sliding_windows: Dict[str, Deque[float]] = defaultdict(deque)

        # category -> (window_start, count) for fixed window
        self.fixed_windows: Dict[str, Tuple[float, int]] = {}

        self.configs: Dict[str, RateLimitConfig] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def configure_limit(self, category: str, config: RateLimitConfig) -> None:
        """Configure rate limiting for a specific category."""
        self.configs[category] = config
        logger.info(f"Configured rate limit for {category}: {config.requests_per_window} req/{config.window_seconds}s ({config.strategy})")

    async def acquire(self, category: str = "default") -> float:
        """
        Wait until the category has budget left, then reserve one admission.

        Returns:
            The admission time according to the limiter's clock
        """
        if category not in self.configs:
            logger.warning(f"No rate limit configured for category '{category}', allowing request")
            return self._clock()

        config = self.configs[category]
        lock = self._locks.setdefault(category, asyncio.Lock())

        async with lock:
            if config.strategy == "fixed_window":
                return await self._acquire_fixed_window(category, config)
            return await self._acquire_sliding_window(category, config)

    async def _acquire_sliding_window(self, category: str, config: RateLimitConfig) -> float:
        window_times = self.sliding_windows[category]

        while True:
            current_time = self._clock()
            while window_times and current_time - window_times[0] >= config.window_seconds:
                window_times.popleft()

            if len(window_times) < config.requests_per_window:
                break

            # Wait until the oldest admission leaves the window
            wait_time = config.window_seconds - (current_time - window_times[0])
            logger.info(f"Rate limiting {category}: waiting {wait_time:.2f} seconds")
            await self._sleep(wait_time)

        window_times.append(current_time)
        return current_time

    async def _acquire_fixed_window(self, category: str, config: RateLimitConfig) -> float:
        current_time = self._clock()
        window_start, count = self.fixed_windows.get(category, (current_time, 0))

        if current_time - window_start >= config.window_seconds:
            window_start, count = current_time, 0
        elif count >= config.requests_per_window:
            wait_time = (window_start + config.window_seconds) - current_time
            logger.info(f"Rate limiting {category}: waiting {wait_time:.2f} seconds for next window")
            await self._sleep(wait_time)
            current_time = self._clock()
            window_start, count = current_time, 0

        self.fixed_windows[category] = (window_start, count + 1)
        return current_time

    def get_remaining_requests(self, category: str) -> Optional[int]:
        """
        Get remaining admissions for a category in its current window.

        Returns:
            Remaining admissions, or None if the category is unlimited
        """
        if category not in self.configs:
            return None

        config = self.configs[category]
        current_time = self._clock()

        if config.strategy == "sliding_window":
            recent = [t for t in self.sliding_windows[category] if current_time - t < config.window_seconds]
            return max(0, config.requests_per_window - len(recent))

        window_start, count = self.fixed_windows.get(category, (current_time, 0))
        if current_time - window_start >= config.window_seconds:
            return config.requests_per_window
        return max(0, config.requests_per_window - count)


__all__ = ["RateLimitConfig", "RateLimiter"]
