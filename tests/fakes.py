"""Scripted product reconcilers and store doubles shared by the tests."""

from typing import Optional, Union

from suite_operator.models.installation import Installation, ProductStatus
from suite_operator.models.resource import ResourceRef
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileContext
from suite_operator.services.products.base import BaseProductReconciler
from suite_operator.services.products.registry import ProductRegistry
from suite_operator.services.store import ConflictError, MemoryObjectStore, ObjectStore

Outcome = Union[Phase, Exception]


class ProductScript:
    """Outcomes a scripted product returns on successive reconciles.

    The last outcome repeats once the script runs out.
    """

    def __init__(
        self,
        *outcomes: Outcome,
        teardown: Optional[list[Outcome]] = None,
        preflight: Optional[str] = None,
    ):
        self.outcomes = list(outcomes) or [Phase.COMPLETED]
        self.teardown_outcomes = list(teardown or [Phase.COMPLETED])
        self.preflight = preflight
        self.calls = 0
        self.teardown_calls = 0

    @staticmethod
    def _next(outcomes: list[Outcome]) -> Outcome:
        if len(outcomes) > 1:
            return outcomes.pop(0)
        return outcomes[0]

    def next_outcome(self) -> Outcome:
        return self._next(self.outcomes)

    def next_teardown(self) -> Outcome:
        return self._next(self.teardown_outcomes)


class ScriptedProduct(BaseProductReconciler):
    """Product whose phases come from a ProductScript."""

    def __init__(self, name: str, script: ProductScript, log: list, installation: Installation):
        self.product_name = name
        super().__init__(installation)
        self.script = script
        self.log = log

    def get_preflight_object(self, namespace: str) -> Optional[ResourceRef]:
        if self.script.preflight is None:
            return None
        return ResourceRef(kind="Deployment", name=self.script.preflight, namespace=namespace)

    async def reconcile(
        self,
        ctx: ReconcileContext,
        installation: Installation,
        product_status: ProductStatus,
        store: ObjectStore,
    ) -> Phase:
        async def teardown() -> Phase:
            self.script.teardown_calls += 1
            self.log.append(f"teardown:{self.product_name}")
            outcome = self.script.next_teardown()
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        phase = await self.reconcile_finalizer(ctx, installation, store, teardown)
        if installation.deletion_requested:
            return phase

        self.script.calls += 1
        self.log.append(self.product_name)
        outcome = self.script.next_outcome()
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == Phase.COMPLETED:
            product_status.version = "1.0.0"
        return outcome


def scripted_registry(scripts: dict[str, ProductScript], log: Optional[list] = None) -> ProductRegistry:
    """Registry whose products follow the given scripts and append to ``log``."""
    log = log if log is not None else []
    registry = ProductRegistry()
    for name, script in scripts.items():
        registry.register(
            name,
            lambda inst, name=name, script=script: ScriptedProduct(name, script, log, inst),
        )
    return registry


class ConflictingStore(MemoryObjectStore):
    """Memory store that rejects a number of upcoming writes with ConflictError."""

    def __init__(self):
        super().__init__()
        self.status_conflicts = 0
        self.spec_conflicts = 0

    async def update_installation_status(self, installation):
        if self.status_conflicts > 0:
            self.status_conflicts -= 1
            raise ConflictError("simulated status conflict")
        return await super().update_installation_status(installation)

    async def update_installation(self, installation):
        if self.spec_conflicts > 0:
            self.spec_conflicts -= 1
            raise ConflictError("simulated spec conflict")
        return await super().update_installation(installation)


async def seed(store: MemoryObjectStore, installation: Installation, with_secret: bool = True):
    """Store the installation (and the required secret) and return the stored copy."""
    if with_secret:
        await store.apply_resource(
            ResourceRef(
                kind="Secret",
                name="github-oauth-secret",
                namespace=installation.metadata.namespace,
            ),
            {"data": {"clientId": "id", "secret": "s3cr3t"}},
        )
    return await store.create_installation(installation)
