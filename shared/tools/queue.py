"""Bounded-concurrency work queue with per-key de-duplication."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

log = logging.getLogger("chainhealth.queue")


@dataclass
class PendingTask:
    key: str | None
    work: Callable[[], Awaitable[Any]]
    future: asyncio.Future


class DedupQueue:
    """FIFO queue that runs at most ``concurrency`` tasks at once.

    Submitting under a key that is still waiting replaces the waiting task:
    the old ``work`` is never called and both submitters get the same future,
    resolved with the newer task's result. Tasks already running are never
    replaced or cancelled.
    """

    def __init__(self, concurrency: int = 20):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self._waiting: deque[PendingTask] = deque()
        self._running: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    def submit(self, work: Callable[[], Awaitable[Any]], key: str | None = None) -> asyncio.Future:
        """Queue ``work`` and return a future for its result.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        future = None
        if key:
            stale = self._remove_waiting(key)
            if stale is not None and not stale.future.cancelled():
                log.debug("Replacing waiting task for %s", key)
                future = stale.future
        if future is None:
            future = loop.create_future()

        self._waiting.append(PendingTask(key=key, work=work, future=future))
        self._idle.clear()
        self._dispatch()
        return future

    def size(self) -> int:
        """Number of tasks waiting for a worker slot."""
        return len(self._waiting)

    @property
    def running(self) -> int:
        return len(self._running)

    def clear(self) -> None:
        """Drop every waiting task. Running tasks finish normally."""
        dropped = 0
        while self._waiting:
            task = self._waiting.popleft()
            task.future.cancel()
            dropped += 1
        if dropped:
            log.debug("Cleared %d waiting task(s)", dropped)
        if not self._running:
            self._idle.set()

    async def join(self) -> None:
        """Wait until nothing is waiting or running."""
        await self._idle.wait()

    def _remove_waiting(self, key: str) -> PendingTask | None:
        for task in self._waiting:
            if task.key == key:
                self._waiting.remove(task)
                return task
        return None

    def _dispatch(self) -> None:
        while self._waiting and len(self._running) < self.concurrency:
            pending = self._waiting.popleft()
            if pending.future.cancelled():
                continue
            worker = asyncio.get_running_loop().create_task(self._run(pending))
            self._running.add(worker)
            worker.add_done_callback(self._finished)
        if not self._waiting and not self._running:
            self._idle.set()

    async def _run(self, pending: PendingTask) -> None:
        try:
            result = await pending.work()
        except asyncio.CancelledError:
            pending.future.cancel()
            raise
        except Exception as exc:
            log.debug("Task %s failed: %r", pending.key or "<unkeyed>", exc)
            if not pending.future.done():
                pending.future.set_exception(exc)
        else:
            if not pending.future.done():
                pending.future.set_result(result)

    def _finished(self, worker: asyncio.Task) -> None:
        self._running.discard(worker)
        self._dispatch()
