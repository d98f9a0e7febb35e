"""Fixed-size asyncio worker pool draining a bounded queue."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from confused.exceptions import PoolClosedError

logger = structlog.get_logger("confused.pool")

WorkItem = Callable[[], Awaitable[object]]


class WorkerPool:
    """Run submitted work items on *workers* persistent tasks.

    ``submit`` waits while the queue is full. ``stop`` refuses further
    submissions and waits until every queued and running item has finished.
    ``cancel`` is cooperative: queued items are discarded, but an item that is
    already running (e.g. awaiting an HTTP response or a backoff sleep) is
    never interrupted.
    """

    def __init__(self, workers: int, queue_size: int | None = None) -> None:
        if workers <= 0:
            raise ValueError("workers must be greater than 0")
        self.workers = workers
        self._queue: asyncio.Queue[WorkItem | None] = asyncio.Queue(
            maxsize=queue_size or workers * 2
        )
        self._tasks: list[asyncio.Task[None]] = []
        self._closed = False
        self._cancelled = False

    # ── lifecycle ──────────────────────────────────────────────────────────

    def start(self) -> None:
        """Spawn the worker tasks. Must be called from a running event loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"pool-worker-{i}")
            for i in range(self.workers)
        ]
        logger.debug("pool.started", workers=self.workers)

    async def stop(self) -> None:
        """Close the queue and wait for queued and in-flight items to finish."""
        if self._closed:
            return
        self._closed = True
        for _ in self._tasks:
            await self._queue.put(None)
        await asyncio.gather(*self._tasks)
        self._tasks.clear()
        logger.debug("pool.stopped", workers=self.workers)

    def cancel(self) -> None:
        """Stop starting new items. Running items are left to complete."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def __aenter__(self) -> WorkerPool:
        self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    # ── public ─────────────────────────────────────────────────────────────

    async def submit(self, item: WorkItem) -> None:
        """Queue *item*, waiting for room if the queue is full."""
        if self._closed:
            raise PoolClosedError("worker pool is stopped")
        if self._cancelled:
            return
        await self._queue.put(item)

    # ── internal ───────────────────────────────────────────────────────────

    async def _worker(self, index: int) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return
                if self._cancelled:
                    continue
                await item()
            except Exception:
                logger.exception("pool.task_failed", worker=index)
            finally:
                self._queue.task_done()
