"""Runs the products of one stage and aggregates the stage phase."""

import logging
from typing import Optional

from suite_operator.models.installation import Installation, ProductStatus, StageStatus
from suite_operator.models.installation_type import Stage
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileCancelled, ReconcileContext
from suite_operator.services.products.registry import ProductRegistry
from suite_operator.services.reporter import EventReporter
from suite_operator.services.store import ObjectStore


class MultiError(Exception):
    """Errors collected from several products."""

    def __init__(self, prefix: str = "product installation errors"):
        super().__init__(prefix)
        self.prefix = prefix
        self.errors: list[Exception] = []

    def add(self, error: Exception) -> None:
        self.errors.append(error)

    def __len__(self) -> int:
        return len(self.errors)

    def __str__(self) -> str:
        return f"{self.prefix}: " + "; ".join(str(e) for e in self.errors)


class StageStepError(Exception):
    """A single product failed while reconciling a stage."""

    def __init__(self, product: str, cause: Exception):
        super().__init__(f"failed installation of {product}: {cause}")
        self.product = product
        self.cause = cause


class StageSequencer:
    """Reconciles every product of a stage, in declared order.

    A failing product never stops its siblings: the error is collected and the
    stage stays in progress so the next reconcile retries it.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: ProductRegistry,
        reporter: Optional[EventReporter] = None,
    ):
        self.logger = logging.getLogger("suite_operator.sequencer")
        self.store = store
        self.registry = registry
        self.reporter = reporter

    async def process_stage(
        self, ctx: ReconcileContext, installation: Installation, stage: Stage
    ) -> tuple[Phase, Optional[MultiError]]:
        """Reconcile one stage.

        Args:
            ctx: Normal-path reconcile context
            installation: Installation being reconciled, mutated in place
            stage: Stage template

        Returns:
            (stage phase, collected product errors or None)

        Raises:
            UnknownProductError: If a product of the stage is not registered
            ReconcileCancelled: If the context is cancelled
        """
        stage_status = installation.status.stages.get(stage.name)
        if stage_status is None:
            stage_status = StageStatus(name=stage.name)
            installation.status.stages[stage.name] = stage_status

        errors = MultiError()
        incomplete = False

        for descriptor in stage.products:
            slot = stage_status.products.get(descriptor.name)
            if slot is None:
                slot = ProductStatus(name=descriptor.name)
                stage_status.products[descriptor.name] = slot
            previous = slot.phase

            reconciler = self.registry.create(descriptor.name, installation)
            ctx.raise_if_cancelled()

            try:
                slot.phase = await reconciler.reconcile(ctx, installation, slot, self.store)
            except ReconcileCancelled:
                raise
            except Exception as e:
                self.logger.warning(f"Product {descriptor.name} failed: {e}")
                errors.add(StageStepError(descriptor.name, e))
                slot.phase = Phase.FAILED

            self.logger.info(f"current phase for {descriptor.name} is: {slot.phase.value}")

            if slot.phase != Phase.COMPLETED:
                incomplete = True
            elif previous != Phase.COMPLETED and self.reporter is not None:
                await self.reporter.product_completed(installation, descriptor.name)

        stage_status.phase = Phase.IN_PROGRESS if incomplete else Phase.COMPLETED
        return stage_status.phase, (errors if len(errors) else None)
