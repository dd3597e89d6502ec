"""Tests for TaskQueue."""

from __future__ import annotations

import asyncio

import pytest

from pkgbuild.build import TaskQueue


class _Tracker:
    def __init__(self) -> None:
        self.running = 0
        self.max_running = 0
        self.started: list[int] = []

    def job(self, n: int, delay: float = 0.01, fail: bool = False):
        async def run() -> int:
            self.started.append(n)
            self.running += 1
            self.max_running = max(self.max_running, self.running)
            try:
                await asyncio.sleep(delay)
                if fail:
                    raise RuntimeError(f"job {n} failed")
                return n
            finally:
                self.running -= 1

        return run


class TestTaskQueue:
    @pytest.mark.parametrize("concurrency", [0, -1])
    def test_rejects_non_positive_concurrency(self, concurrency: int):
        with pytest.raises(ValueError, match="positive integer"):
            TaskQueue(concurrency)

    @pytest.mark.asyncio
    async def test_returns_job_results(self):
        queue = TaskQueue(2)
        tracker = _Tracker()
        results = await asyncio.gather(
            *(queue.submit(tracker.job(n)) for n in range(5))
        )
        assert results == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [1, 2, 3])
    async def test_concurrency_bound(self, concurrency: int):
        queue = TaskQueue(concurrency)
        tracker = _Tracker()
        await asyncio.gather(*(queue.submit(tracker.job(n)) for n in range(8)))
        assert tracker.max_running == concurrency
        assert queue.running == 0
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_fifo_admission(self):
        queue = TaskQueue(1)
        tracker = _Tracker()
        # Later jobs are shorter; with FIFO admission they still start in order.
        delays = [0.03, 0.02, 0.01, 0.0]
        await asyncio.gather(
            *(queue.submit(tracker.job(n, delay)) for n, delay in enumerate(delays))
        )
        assert tracker.started == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_pending_count(self):
        queue = TaskQueue(1)
        tracker = _Tracker()
        submissions = [
            asyncio.create_task(queue.submit(tracker.job(n, 0.02))) for n in range(3)
        ]
        await asyncio.sleep(0.005)
        assert queue.running == 1
        assert queue.pending == 2
        await asyncio.gather(*submissions)

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_other_jobs(self):
        queue = TaskQueue(2)
        tracker = _Tracker()
        results = await asyncio.gather(
            queue.submit(tracker.job(0)),
            queue.submit(tracker.job(1, fail=True)),
            queue.submit(tracker.job(2)),
            queue.submit(tracker.job(3)),
            return_exceptions=True,
        )
        assert results[0] == 0
        assert isinstance(results[1], RuntimeError)
        assert results[2:] == [2, 3]
        assert queue.running == 0

    @pytest.mark.asyncio
    async def test_returned_error_values_pass_through(self):
        queue = TaskQueue(1)
        error = ValueError("as value")

        async def job():
            return error

        assert await queue.submit(job) is error

    @pytest.mark.asyncio
    async def test_cancelled_waiter_releases_its_place(self):
        queue = TaskQueue(1)
        tracker = _Tracker()
        first = asyncio.create_task(queue.submit(tracker.job(0, 0.02)))
        waiting = asyncio.create_task(queue.submit(tracker.job(1)))
        last = asyncio.create_task(queue.submit(tracker.job(2)))
        await asyncio.sleep(0.005)
        waiting.cancel()

        assert await first == 0
        assert await last == 2
        with pytest.raises(asyncio.CancelledError):
            await waiting
        assert tracker.started == [0, 2]
        assert queue.running == 0
