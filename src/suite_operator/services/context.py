"""Reconcile-scoped cancellation context."""

import asyncio
import logging
from typing import Coroutine, Optional


class ReconcileCancelled(Exception):
    """Work was attempted on a cancelled reconcile context."""


class ReconcileContext:
    """Cancellation scope shared by one installation's normal reconcile path.

    Product reconcilers call ``raise_if_cancelled()`` before issuing writes and
    start background work with ``spawn()`` so that ``cancel()`` stops it.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self.logger = logging.getLogger("suite_operator.context")
        self._cancelled = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ReconcileCancelled(f"Reconcile context {self.name} was cancelled")

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Run a coroutine in the background, bound to this context.

        Raises:
            ReconcileCancelled: If the context is already cancelled
        """
        if self._cancelled:
            coro.close()
            self.raise_if_cancelled()
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def is_running(self, name: str) -> bool:
        """Whether a background task with this name is still in flight."""
        return any(task.get_name() == name for task in self._tasks)

    def cancel(self) -> None:
        """Cancel the context and every background task still running."""
        if self._cancelled:
            return
        self._cancelled = True
        for task in list(self._tasks):
            task.cancel()
        self.logger.info(
            f"Cancelled reconcile context {self.name} ({len(self._tasks)} tasks in flight)"
        )
