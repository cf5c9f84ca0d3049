"""Unit tests for DeletionCoordinator."""

import pytest

from fakes import ConflictingStore, ProductScript, scripted_registry, seed

from suite_operator.models.installation import ProductStatus, StageStatus
from suite_operator.models.result import ReconcileResult
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileContext
from suite_operator.services.deletion import ORCHESTRATOR_FINALIZER, DeletionCoordinator
from suite_operator.services.persister import StatusPersister
from suite_operator.services.products.base import product_finalizer
from suite_operator.services.store import NotFoundError


async def _installed(store, installation, products, extra=()):
    """Store an installation that already holds finalizers and is being deleted."""
    installation.metadata.finalizers = [ORCHESTRATOR_FINALIZER] + [
        product_finalizer(p) for p in products
    ] + list(extra)
    await seed(store, installation)
    await store.delete_installation("ops", "test-install")
    return await store.get_installation("ops", "test-install")


def _coordinator(store, registry):
    return DeletionCoordinator(
        store, registry, StatusPersister(store, requeue_delay=10.0), requeue_delay=10.0
    )


@pytest.mark.unit
class TestDeletionCoordinator:
    """Test teardown driven by finalizer tokens."""

    @pytest.mark.asyncio
    async def test_tears_down_in_finalizer_order(self, store, installation):
        # Arrange
        log = []
        registry = scripted_registry(
            {"A": ProductScript(), "B": ProductScript(), "C": ProductScript()}, log
        )
        stored = await _installed(store, installation, ["C", "A"])

        # Act
        result = await _coordinator(store, registry).run(stored)

        # Assert
        assert result == ReconcileResult.stop()
        assert log == ["teardown:C", "teardown:A"]
        with pytest.raises(NotFoundError):
            await store.get_installation("ops", "test-install")

    @pytest.mark.asyncio
    async def test_foreign_finalizers_are_left_alone(self, store, installation):
        """Tokens owned by someone else block removal but are never touched."""
        # Arrange
        registry = scripted_registry({"A": ProductScript()})
        stored = await _installed(store, installation, ["A"], extra=["example.com/backup"])

        # Act
        result = await _coordinator(store, registry).run(stored)

        # Assert
        persisted = await store.get_installation("ops", "test-install")
        assert result == ReconcileResult.after(10.0)
        assert persisted.metadata.finalizers == [ORCHESTRATOR_FINALIZER, "example.com/backup"]

    @pytest.mark.asyncio
    async def test_teardown_error_is_collected(self, store, installation):
        """One failing product does not stop the others."""
        # Arrange
        scripts = {
            "A": ProductScript(teardown=[RuntimeError("stuck")]),
            "B": ProductScript(),
        }
        log = []
        stored = await _installed(store, installation, ["A", "B"])

        # Act
        result = await _coordinator(store, scripted_registry(scripts, log)).run(stored)

        # Assert
        persisted = await store.get_installation("ops", "test-install")
        assert result == ReconcileResult.after(10.0)
        assert log == ["teardown:A", "teardown:B"]
        assert persisted.metadata.finalizers == [ORCHESTRATOR_FINALIZER, product_finalizer("A")]

    @pytest.mark.asyncio
    async def test_unregistered_product_token_blocks_removal(self, store, installation):
        # Arrange
        stored = await _installed(store, installation, ["legacy"])

        # Act
        result = await _coordinator(store, scripted_registry({})).run(stored)

        # Assert
        persisted = await store.get_installation("ops", "test-install")
        assert result == ReconcileResult.after(10.0)
        assert ORCHESTRATOR_FINALIZER in persisted.metadata.finalizers

    @pytest.mark.asyncio
    async def test_cancels_normal_path_context(self, store, installation):
        # Arrange
        context = ReconcileContext(name="ops/test-install")
        stored = await _installed(store, installation, [])

        # Act
        await _coordinator(store, scripted_registry({})).run(stored, context)

        # Assert
        assert context.cancelled

    @pytest.mark.asyncio
    async def test_conflict_on_final_removal_requeues(self, installation):
        """Losing the race on the last write keeps the token in memory and requeues."""
        # Arrange
        store = ConflictingStore()
        stored = await _installed(store, installation, [])
        store.spec_conflicts = 1

        # Act
        result = await _coordinator(store, scripted_registry({})).run(stored)

        # Assert
        assert result == ReconcileResult.after(10.0)
        assert stored.metadata.finalizers == [ORCHESTRATOR_FINALIZER]
        persisted = await store.get_installation("ops", "test-install")
        assert persisted.metadata.finalizers == [ORCHESTRATOR_FINALIZER]

    @pytest.mark.asyncio
    async def test_teardown_phases_are_persisted(self, store, installation):
        """Products still tearing down are visible in the stored status."""
        # Arrange
        installation.status.stages = {
            "S1": StageStatus(
                name="S1",
                phase=Phase.COMPLETED,
                products={
                    "A": ProductStatus(name="A", phase=Phase.COMPLETED),
                    "B": ProductStatus(name="B", phase=Phase.COMPLETED),
                },
            )
        }
        scripts = {
            "A": ProductScript(teardown=[Phase.IN_PROGRESS]),
            "B": ProductScript(teardown=[RuntimeError("stuck")]),
        }
        stored = await _installed(store, installation, ["A", "B"])

        # Act
        result = await _coordinator(store, scripted_registry(scripts)).run(stored)

        # Assert
        persisted = await store.get_installation("ops", "test-install")
        products = persisted.status.stages["S1"].products
        assert result == ReconcileResult.after(10.0)
        assert products["A"].phase == Phase.IN_PROGRESS
        assert products["B"].phase == Phase.FAILED
        assert persisted.metadata.resource_version == stored.metadata.resource_version

    @pytest.mark.asyncio
    async def test_status_conflict_during_teardown_requeues(self, installation):
        # Arrange
        store = ConflictingStore()
        scripts = {"A": ProductScript(teardown=[Phase.IN_PROGRESS])}
        stored = await _installed(store, installation, ["A"])
        store.status_conflicts = 1

        # Act
        result = await _coordinator(store, scripted_registry(scripts)).run(stored)

        # Assert
        assert result == ReconcileResult.after(10.0)
        assert store.status_conflicts == 0
