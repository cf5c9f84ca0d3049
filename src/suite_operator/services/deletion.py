"""Teardown driven by the deletion marker on an installation."""

import logging
from typing import Optional

from suite_operator.models.installation import Installation
from suite_operator.models.result import ReconcileResult
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileContext
from suite_operator.services.persister import StatusPersister
from suite_operator.services.products.base import product_from_finalizer
from suite_operator.services.products.registry import ProductRegistry
from suite_operator.services.sequencer import MultiError
from suite_operator.services.store import ObjectStore

ORCHESTRATOR_FINALIZER = "suite-operator.io/foreground-deletion"


class DeletionCoordinator:
    """Tears an installation down product by product.

    Each product removes its own finalizer once its resources are gone. The
    orchestrator finalizer is removed last, after every product finalizer has
    disappeared and no teardown call failed. There is no forced deletion:
    cleanup is retried until it succeeds.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: ProductRegistry,
        persister: StatusPersister,
        requeue_delay: float = 10.0,
    ):
        self.logger = logging.getLogger("suite_operator.deletion")
        self.store = store
        self.registry = registry
        self.persister = persister
        self.requeue_delay = requeue_delay

    async def run(
        self, installation: Installation, context: Optional[ReconcileContext] = None
    ) -> ReconcileResult:
        """Drive one teardown pass.

        Teardown phases are written to the product status slots and persisted
        before requeueing.

        Args:
            installation: Installation with the deletion marker set
            context: Normal-path context to cancel before teardown starts

        Returns:
            ``stop()`` once the orchestrator finalizer is removed, otherwise a
            fixed-delay requeue

        Raises:
            StoreError: If writing the status or removing the orchestrator
                finalizer fails for a reason other than a version conflict
        """
        if context is not None:
            context.cancel()
        teardown_ctx = ReconcileContext(name=f"{installation.key}/teardown")

        errors = MultiError(prefix="product teardown errors")
        for token in list(installation.metadata.finalizers):
            product = product_from_finalizer(token)
            if product is None:
                continue

            slot = installation.get_product_status(product)
            try:
                reconciler = self.registry.create(product, installation)
                slot.phase = await reconciler.reconcile(
                    teardown_ctx, installation, slot, self.store
                )
            except Exception as e:
                self.logger.warning(f"Failed to tear down product {product}: {e}")
                errors.add(e)
                slot.phase = Phase.FAILED
                continue
            self.logger.info(f"current phase for {product} is: {slot.phase.value}")

        if len(errors) == 0 and installation.metadata.finalizers == [ORCHESTRATOR_FINALIZER]:
            installation.remove_finalizer(ORCHESTRATOR_FINALIZER)
            result = await self.persister.write_spec(installation)
            if result is not None:
                # Put the token back in memory so the state mirrors the store.
                installation.add_finalizer(ORCHESTRATOR_FINALIZER)
                return result
            self.logger.info(f"Installation {installation.key} cleaned up")
            return ReconcileResult.stop()

        if len(errors):
            self.logger.error(f"Teardown of {installation.key} incomplete: {errors}")

        # No finalizers left means the store has already removed the installation.
        if installation.metadata.finalizers:
            result = await self.persister.write_status(installation)
            if result is not None:
                return result
        return ReconcileResult.after(self.requeue_delay)
