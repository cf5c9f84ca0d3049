"""Unit tests for ReconcileContext."""

import asyncio
import pytest

from suite_operator.services.context import ReconcileCancelled, ReconcileContext


@pytest.mark.unit
class TestReconcileContext:
    """Test cancellation of reconcile-scoped work."""

    def test_raise_if_cancelled(self):
        ctx = ReconcileContext(name="ops/suite")
        ctx.raise_if_cancelled()

        ctx.cancel()

        assert ctx.cancelled
        with pytest.raises(ReconcileCancelled, match="ops/suite"):
            ctx.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_cancel_stops_spawned_tasks(self):
        # Arrange
        ctx = ReconcileContext(name="ops/suite")
        task = ctx.spawn(asyncio.sleep(3600), name="watch")
        await asyncio.sleep(0)
        assert ctx.pending_tasks == 1

        # Act
        ctx.cancel()
        await asyncio.gather(task, return_exceptions=True)

        # Assert
        assert task.cancelled()
        assert ctx.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_finished_tasks_are_forgotten(self):
        ctx = ReconcileContext()

        task = ctx.spawn(asyncio.sleep(0))
        await task
        await asyncio.sleep(0)

        assert ctx.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_spawn_after_cancel_raises(self):
        ctx = ReconcileContext()
        ctx.cancel()

        with pytest.raises(ReconcileCancelled):
            ctx.spawn(asyncio.sleep(1))

    @pytest.mark.asyncio
    async def test_is_running_by_name(self):
        ctx = ReconcileContext()
        task = ctx.spawn(asyncio.sleep(3600), name="rhsso-subscription-watch")

        assert ctx.is_running("rhsso-subscription-watch")
        assert not ctx.is_running("3scale-subscription-watch")

        ctx.cancel()
        await asyncio.gather(task, return_exceptions=True)
        assert not ctx.is_running("rhsso-subscription-watch")
