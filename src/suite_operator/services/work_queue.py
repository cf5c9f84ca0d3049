"""Delayed work queue that re-invokes reconciliation per installation key."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from suite_operator.models.result import ReconcileResult

ReconcileHandler = Callable[[str], Awaitable[ReconcileResult]]


class ReconcileQueue:
    """Schedules reconcile invocations for installation keys.

    Guarantees:
    - a key waiting in the queue is queued only once
    - a key is never processed by two workers at the same time; adding it
      while it is being processed re-queues it once processing finishes
    - different keys are processed concurrently, up to ``workers`` at a time

    Retry policy:
    - a ReconcileResult asking for a requeue schedules the key after its
      fixed ``requeue_after`` delay
    - a raised exception schedules the key after a per-key backoff that
      doubles on every consecutive failure, capped at ``failure_max_delay``
    """

    def __init__(
        self,
        handler: ReconcileHandler,
        workers: int = 2,
        failure_base_delay: float = 0.5,
        failure_max_delay: float = 60.0,
    ):
        self.logger = logging.getLogger("suite_operator.work_queue")
        self.handler = handler
        self.workers = workers
        self.failure_base_delay = failure_base_delay
        self.failure_max_delay = failure_max_delay

        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._queued: set[str] = set()
        self._processing: set[str] = set()
        self._dirty: set[str] = set()
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._failures: dict[str, int] = {}
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def add(self, key: str) -> None:
        """Queue a key for immediate processing."""
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        if key in self._queued:
            return
        if key in self._processing:
            self._dirty.add(key)
            return
        self._queued.add(key)
        self._queue.put_nowait(key)

    def add_after(self, key: str, delay: float) -> None:
        """Queue a key once ``delay`` seconds have passed.

        An earlier pending timer for the same key wins over a later one.
        """
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        due = loop.time() + delay
        existing = self._timers.get(key)
        if existing is not None:
            if existing.when() <= due:
                return
            existing.cancel()
        self._timers[key] = loop.call_at(due, self._fire, key)

    def _fire(self, key: str) -> None:
        self._timers.pop(key, None)
        self.add(key)

    def failure_delay(self, key: str) -> float:
        failures = self._failures.get(key, 0)
        return min(self.failure_base_delay * (2 ** failures), self.failure_max_delay)

    async def start(self) -> None:
        if self._tasks:
            return
        for idx in range(self.workers):
            self._tasks.append(asyncio.create_task(self._worker(), name=f"reconcile-worker-{idx}"))
        self.logger.info(f"Reconcile queue started with {self.workers} workers")

    async def stop(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self.logger.info("Reconcile queue stopped")

    async def _worker(self) -> None:
        while True:
            key = await self._queue.get()
            self._queued.discard(key)
            self._processing.add(key)
            try:
                await self._process(key)
            finally:
                self._processing.discard(key)
                self._queue.task_done()
                if key in self._dirty:
                    self._dirty.discard(key)
                    self.add(key)

    async def _process(self, key: str) -> Optional[ReconcileResult]:
        try:
            result = await self.handler(key)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            delay = self.failure_delay(key)
            self._failures[key] = self._failures.get(key, 0) + 1
            self.logger.error(f"Reconcile of {key} failed, retrying in {delay:.1f}s: {e}", exc_info=True)
            self.add_after(key, delay)
            return None

        self._failures.pop(key, None)
        if result.requeue:
            self.add_after(key, result.requeue_after)
        return result
