"""Tests for the rate limiter."""

import asyncio
import time

import pytest

from kibomigrate.bulk.limiter import RateLimiter


class TestRateLimiter:
    """Test cases for RateLimiter."""

    @pytest.mark.asyncio
    async def test_instant_operations_are_spaced_by_min_time(self, limiter, clock):
        starts = []

        async def operation():
            starts.append(clock())

        for _ in range(4):
            await limiter.schedule(operation)

        assert starts == [0.0, 0.5, 1.0, 1.5]

    @pytest.mark.asyncio
    async def test_kth_operation_starts_after_k_minus_one_intervals(self, limiter, clock):
        starts = []

        async def operation():
            starts.append(clock())

        await asyncio.gather(*(limiter.schedule(operation) for _ in range(5)))

        for k, start in enumerate(starts):
            assert start - starts[0] >= k * 0.5

    @pytest.mark.asyncio
    async def test_slow_operation_does_not_add_extra_wait(self, limiter, clock):
        async def slow_operation():
            clock.advance(2.0)

        async def fast_operation():
            return clock()

        await limiter.schedule(slow_operation)
        started_at = await limiter.schedule(fast_operation)

        assert started_at == 2.0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_returns_operation_result_and_passes_arguments(self, limiter):
        async def add(a, b, scale=1):
            return (a + b) * scale

        assert await limiter.schedule(add, 2, 3, scale=10) == 50

    @pytest.mark.asyncio
    async def test_exception_propagates_and_limiter_keeps_serving(self, limiter):
        async def failing():
            raise RuntimeError("boom")

        async def succeeding():
            return "ok"

        with pytest.raises(RuntimeError, match="boom"):
            await limiter.schedule(failing)

        assert await limiter.schedule(succeeding) == "ok"
        assert limiter.errored == 1
        assert limiter.completed == 1
        assert limiter.pending == 0

    @pytest.mark.asyncio
    async def test_operations_run_one_at_a_time_in_submission_order(self, limiter):
        running = 0
        max_running = 0
        order = []

        async def operation(index):
            nonlocal running, max_running
            running += 1
            max_running = max(max_running, running)
            await asyncio.sleep(0)
            order.append(index)
            running -= 1

        await asyncio.gather(*(limiter.schedule(operation, i) for i in range(6)))

        assert max_running == 1
        assert order == list(range(6))
        assert limiter.scheduled == 6

    @pytest.mark.asyncio
    async def test_real_clock_spacing(self):
        limiter = RateLimiter(min_time=0.02)
        starts = []

        async def operation():
            starts.append(time.monotonic())

        for _ in range(3):
            await limiter.schedule(operation)

        assert starts[2] - starts[0] >= 0.04 - 0.001

    def test_negative_min_time_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(min_time=-1)
