"""Unit tests for the RateLimiter and the rate-limited task queue."""

import asyncio

import pytest

from adapter.rate_limiter import RateLimiter, RateLimitConfig
from core.scheduler import RateLimitedQueue, SYNTHESIS_CATEGORY


class FakeClock:
    """Manual clock; sleeping advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class TestRateLimitConfig:
    """Test RateLimitConfig validation."""

    def test_defaults(self):
        config = RateLimitConfig(10, 2.0)
        assert config.strategy == "sliding_window"

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            RateLimitConfig(0, 2.0)
        with pytest.raises(ValueError):
            RateLimitConfig(10, 0)


class TestRateLimiter:
    """Test the RateLimiter class."""

    def test_rate_limiter_init(self):
        limiter = RateLimiter()
        assert len(limiter.configs) == 0
        assert len(limiter.sliding_windows) == 0

    def test_rate_limiter_configure(self):
        limiter = RateLimiter()
        config = RateLimitConfig(requests_per_window=10, window_seconds=2, strategy="sliding_window")
        limiter.configure_limit("test", config)

        assert "test" in limiter.configs
        assert limiter.configs["test"] == config

    @pytest.mark.asyncio
    async def test_no_wait_under_limit(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.configure_limit("test", RateLimitConfig(10, 2))

        for _ in range(10):
            await limiter.acquire("test")

        assert clock.sleeps == []
        assert len(limiter.sliding_windows["test"]) == 10
        assert limiter.get_remaining_requests("test") == 0

    @pytest.mark.asyncio
    async def test_sliding_window_waits(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.configure_limit("test", RateLimitConfig(2, 60, "sliding_window"))

        await limiter.acquire("test")
        clock.now = 10.0
        await limiter.acquire("test")
        admitted_at = await limiter.acquire("test")  # should wait for the first slot to expire

        assert clock.sleeps == [50.0]
        assert admitted_at == 60.0

    @pytest.mark.asyncio
    async def test_sliding_window_never_exceeds_budget(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.configure_limit("test", RateLimitConfig(3, 1.0))

        admissions = []
        for _ in range(12):
            clock.now += 0.25
            admissions.append(await limiter.acquire("test"))

        for start in admissions:
            in_window = [t for t in admissions if start <= t < start + 1.0]
            assert len(in_window) <= 3

    @pytest.mark.asyncio
    async def test_fixed_window_strategy(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.configure_limit("test", RateLimitConfig(2, 5, "fixed_window"))

        times = [await limiter.acquire("test") for _ in range(5)]

        assert times == [0.0, 0.0, 5.0, 5.0, 10.0]
        assert limiter.get_remaining_requests("test") == 1

    @pytest.mark.asyncio
    async def test_unconfigured_category_allowed(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)

        for _ in range(100):
            await limiter.acquire("unknown")

        assert clock.sleeps == []
        assert limiter.get_remaining_requests("unknown") is None


class TestRateLimitedQueue:
    """Test admission scheduling and the idle barrier."""

    @pytest.mark.asyncio
    async def test_configures_default_limit(self):
        queue = RateLimitedQueue()
        config = queue.rate_limiter.configs[SYNTHESIS_CATEGORY]
        assert (config.requests_per_window, config.window_seconds) == (10, 2.0)

    @pytest.mark.asyncio
    async def test_existing_limit_is_kept(self):
        limiter = RateLimiter()
        limiter.configure_limit(SYNTHESIS_CATEGORY, RateLimitConfig(3, 1.0))

        queue = RateLimitedQueue(limiter)

        assert queue.rate_limiter.configs[SYNTHESIS_CATEGORY].requests_per_window == 3

    @pytest.mark.asyncio
    async def test_twenty_five_tasks_span_three_windows(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.configure_limit(SYNTHESIS_CATEGORY, RateLimitConfig(10, 2.0))
        queue = RateLimitedQueue(limiter)
        starts = []

        async def task():
            starts.append(clock())
            await asyncio.sleep(0)

        for _ in range(25):
            queue.add(task)
        await queue.on_idle()

        assert len(starts) == 25
        assert len([t for t in starts if t - starts[0] < 2.0]) == 10
        assert len({int(t // 2.0) for t in starts}) >= 3
        assert sorted(starts) == [0.0] * 10 + [2.0] * 10 + [4.0] * 5

    @pytest.mark.asyncio
    async def test_admitted_tasks_run_concurrently(self):
        queue = RateLimitedQueue()
        release = asyncio.Event()
        running = []

        async def task():
            running.append(1)
            await release.wait()

        for _ in range(5):
            queue.add(task)
        for _ in range(5):
            await asyncio.sleep(0)

        assert len(running) == 5
        assert queue.pending == 5

        release.set()
        await queue.on_idle()
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_on_idle_waits_for_slow_task(self):
        queue = RateLimitedQueue()
        release = asyncio.Event()

        async def slow():
            await release.wait()

        queue.add(slow)
        waiter = asyncio.create_task(queue.on_idle())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        release.set()
        await asyncio.wait_for(waiter, timeout=1)
        assert waiter.done()

    @pytest.mark.asyncio
    async def test_failures_do_not_propagate(self):
        queue = RateLimitedQueue()
        done = []

        async def boom():
            raise RuntimeError("boom")

        async def ok():
            done.append(True)

        queue.add(boom)
        queue.add(ok)
        await queue.on_idle()

        assert done == [True]
        assert queue.failed == 1
        assert queue.admitted == 2

    @pytest.mark.asyncio
    async def test_idle_when_nothing_added(self):
        queue = RateLimitedQueue()
        await asyncio.wait_for(queue.on_idle(), timeout=1)
        assert queue.pending == 0
