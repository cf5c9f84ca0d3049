"""Top-level installation reconcile state machine."""

import logging
from typing import Optional

from suite_operator.config.settings import ConfigurationError, Settings
from suite_operator.models.installation import Installation, StageStatus
from suite_operator.models.installation_type import (
    BOOTSTRAP_STAGE,
    InstallationType,
    installation_type_factory,
    load_installation_types,
)
from suite_operator.models.result import ReconcileResult
from suite_operator.models.status import Phase, PreflightStatus
from suite_operator.services.context import ReconcileCancelled, ReconcileContext
from suite_operator.services.deletion import ORCHESTRATOR_FINALIZER, DeletionCoordinator
from suite_operator.services.persister import StatusPersister
from suite_operator.services.preflight import PreflightChecker
from suite_operator.services.products.bootstrap import BootstrapReconciler
from suite_operator.services.products.registry import ProductRegistry
from suite_operator.services.reporter import EventReporter
from suite_operator.services.sequencer import StageSequencer
from suite_operator.services.store import NotFoundError, ObjectStore

PREFLIGHT_PENDING = (
    PreflightStatus.NOT_STARTED,
    PreflightStatus.IN_PROGRESS,
    PreflightStatus.FAIL,
)


class InstallationOrchestrator:
    """Drives an installation toward its desired state, one pass per call.

    Control flow of ``reconcile``:
    fetch → resolve type → ensure finalizer → preflight gate → deletion
    → stages in order (stop at first incomplete) → persist → requeue
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: ProductRegistry,
        settings: Settings,
        reporter: Optional[EventReporter] = None,
        installation_types: Optional[dict[str, InstallationType]] = None,
        bootstrap: Optional[BootstrapReconciler] = None,
    ):
        """Initialize orchestrator.

        Args:
            store: Object store holding installations and cluster resources
            registry: Product reconciler registry
            settings: Operator settings
            reporter: Event reporter (log-only reporter if None)
            installation_types: Templates by type name (loaded from settings if None)
            bootstrap: Bootstrap stage reconciler (built from settings if None)
        """
        self.logger = logging.getLogger("suite_operator.orchestrator")
        self.store = store
        self.registry = registry
        self.settings = settings
        self.requeue_delay = settings.requeue_delay_seconds
        self.reporter = reporter or EventReporter()
        self.installation_types = (
            installation_types
            if installation_types is not None
            else load_installation_types(settings.installation_types_file or None)
        )
        self.bootstrap = bootstrap or BootstrapReconciler(settings.oauth_client_secrets_name)

        self.persister = StatusPersister(store, self.requeue_delay)
        self.preflight = PreflightChecker(
            store,
            registry,
            self.persister,
            required_secrets=settings.required_secrets_list,
            requeue_delay=self.requeue_delay,
        )
        self.sequencer = StageSequencer(store, registry, self.reporter)
        self.deletion = DeletionCoordinator(store, registry, self.persister, self.requeue_delay)

        self._contexts: dict[str, ReconcileContext] = {}

    async def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Run one reconcile pass for an installation.

        Returns:
            Requeue directive

        Raises:
            ConfigurationError: If the installation type or its products are unknown
            StoreError: On object store failures other than version conflicts
        """
        try:
            installation = await self.store.get_installation(namespace, name)
        except NotFoundError:
            self.logger.debug(f"Installation {namespace}/{name} not found, nothing to do")
            context = self._contexts.pop(f"{namespace}/{name}", None)
            if context is not None:
                context.cancel()
            return ReconcileResult.stop()

        installation_type = self.resolve_installation_type(installation)

        if not installation.deletion_requested and installation.add_finalizer(
            ORCHESTRATOR_FINALIZER
        ):
            result = await self.persister.write_spec(installation)
            if result is not None:
                return result
            self.logger.info(f"Added finalizer {ORCHESTRATOR_FINALIZER} to {installation.key}")

        if installation.status.preflight_status in PREFLIGHT_PENDING:
            return await self.preflight.run(installation, installation_type)

        if installation.deletion_requested:
            context = self._contexts.pop(installation.key, None)
            return await self.deletion.run(installation, context)

        context = self._context_for(installation.key)
        try:
            await self._run_stages(context, installation, installation_type)
        except ReconcileCancelled as e:
            self.logger.info(f"Reconcile of {installation.key} cancelled: {e}")
            return ReconcileResult.after(self.requeue_delay)

        result = await self.persister.persist(installation)
        if result is not None:
            return result
        return ReconcileResult.after(self.requeue_delay)

    async def reconcile_key(self, key: str) -> ReconcileResult:
        """Work queue entry point taking a ``namespace/name`` key."""
        namespace, _, name = key.partition("/")
        return await self.reconcile(namespace, name)

    def resolve_installation_type(self, installation: Installation) -> InstallationType:
        """Select the template for an installation and check every product is known.

        Raises:
            ConfigurationError: If the type or one of its products is unknown
        """
        installation_type = installation_type_factory(
            installation.spec.type,
            self.settings.products_list,
            self.installation_types,
        )
        missing = self.registry.missing(installation_type.product_names())
        if missing:
            raise ConfigurationError(
                f"Installation type {installation_type.name} uses unknown products: "
                f"{', '.join(missing)}"
            )
        return installation_type

    async def _run_stages(
        self,
        ctx: ReconcileContext,
        installation: Installation,
        installation_type: InstallationType,
    ) -> None:
        for stage in installation_type.stages:
            previous = installation.status.stages.get(stage.name)
            previous_phase = previous.phase if previous is not None else Phase.NONE

            if stage.name == BOOTSTRAP_STAGE:
                phase = await self._bootstrap_stage(ctx, installation)
            else:
                phase, errors = await self.sequencer.process_stage(ctx, installation, stage)
                if errors is not None:
                    self.logger.error(f"Stage {stage.name} of {installation.key}: {errors}")
                    await self.reporter.processing_error(installation, str(errors))

            if phase == Phase.COMPLETED and previous_phase != Phase.COMPLETED:
                await self.reporter.stage_completed(installation, stage.name)

            # don't move to next stage until current stage is complete
            if phase != Phase.COMPLETED:
                self.logger.info(
                    f"Stage {stage.name} of {installation.key} is {phase.value}, "
                    f"waiting before later stages"
                )
                break

    async def _bootstrap_stage(self, ctx: ReconcileContext, installation: Installation) -> Phase:
        try:
            phase = await self.bootstrap.reconcile(ctx, installation, self.store)
        except ReconcileCancelled:
            raise
        except Exception as e:
            self.logger.error(f"Bootstrap stage reconcile failed for {installation.key}: {e}")
            await self.reporter.processing_error(
                installation, f"Bootstrap stage reconcile failed: {e}"
            )
            phase = Phase.FAILED

        installation.status.stages[BOOTSTRAP_STAGE] = StageStatus(
            name=BOOTSTRAP_STAGE, phase=phase
        )
        return phase

    def _context_for(self, key: str) -> ReconcileContext:
        context = self._contexts.get(key)
        if context is None or context.cancelled:
            context = ReconcileContext(name=key)
            self._contexts[key] = context
        return context
