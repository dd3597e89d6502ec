"""Concurrency-bounded job queue."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskQueue:
    """Runs submitted jobs with at most `concurrency` of them in flight.

    Jobs beyond the limit wait in arrival order and are started as running
    jobs finish. A failing job (raised exception or returned error value) only
    affects its own submitter; nothing is cancelled.

    Example:
        queue = TaskQueue(concurrency=4)
        results = await asyncio.gather(*(queue.submit(job) for job in jobs))
    """

    def __init__(self, concurrency: int) -> None:
        if concurrency < 1:
            raise ValueError(
                f"concurrency must be a positive integer, got {concurrency}"
            )
        self.concurrency = concurrency
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def running(self) -> int:
        """Number of jobs currently executing."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of jobs waiting for a free slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def submit(self, job: Callable[[], Awaitable[T]]) -> T:
        """Run `job` once a slot is free and return its result."""
        await self._acquire()
        try:
            return await job()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._running < self.concurrency and not self._waiters:
            self._running += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            # The slot is handed over by _release(), which keeps _running as is.
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._running -= 1
