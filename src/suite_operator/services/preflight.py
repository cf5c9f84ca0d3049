"""Preflight gate run before any stage is processed."""

import logging
from typing import Iterable

from suite_operator.models.installation import Installation
from suite_operator.models.installation_type import InstallationType
from suite_operator.models.resource import ResourceRef
from suite_operator.models.result import ReconcileResult
from suite_operator.models.status import PreflightStatus
from suite_operator.services.persister import StatusPersister
from suite_operator.services.products.registry import ProductRegistry
from suite_operator.services.store import ObjectStore


class PreflightChecker:
    """Confirms the cluster is ready for a fresh installation.

    Checks:
    - every required secret exists in the installation namespace
    - no namespace already holds a conflicting product deployment

    A failed check is recorded in the installation status and retried on the
    next reconcile; it is never raised as an error.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: ProductRegistry,
        persister: StatusPersister,
        required_secrets: Iterable[str] = ("github-oauth-secret",),
        requeue_delay: float = 10.0,
    ):
        self.logger = logging.getLogger("suite_operator.preflight")
        self.store = store
        self.registry = registry
        self.persister = persister
        self.required_secrets = list(required_secrets)
        self.requeue_delay = requeue_delay

    async def run(
        self, installation: Installation, installation_type: InstallationType
    ) -> ReconcileResult:
        """Run all checks and persist the outcome.

        Returns:
            Fixed-delay requeue directive

        Raises:
            StoreError: If the store cannot be queried
        """
        self.logger.info(f"Running preflight checks for {installation.key}..")
        result = ReconcileResult.after(self.requeue_delay)
        installation.status.preflight_status = PreflightStatus.IN_PROGRESS

        for secret_name in self.required_secrets:
            secret = ResourceRef(
                kind="Secret", name=secret_name, namespace=installation.metadata.namespace
            )
            if not await self.store.resource_exists(secret):
                await self._fail(installation, f"could not find secret {secret_name}")
                return result

        for namespace in await self.store.list_namespaces():
            products = self._conflicting_products(installation, installation_type, namespace)
            found = [name for name, ref in products if await self.store.resource_exists(ref)]
            if found:
                await self._fail(
                    installation,
                    f"found conflicting packages: {', '.join(found)}, in namespace: {namespace}",
                )
                return result

        installation.status.preflight_status = PreflightStatus.SUCCESS
        installation.status.preflight_message = "preflight checks passed"
        self.logger.info(f"Preflight checks passed for {installation.key}")
        await self.persister.write_status(installation)
        return result

    def _conflicting_products(
        self,
        installation: Installation,
        installation_type: InstallationType,
        namespace: str,
    ) -> list[tuple[str, ResourceRef]]:
        """Preflight objects every product of the type would conflict with."""
        candidates = []
        for product in installation_type.product_names():
            reconciler = self.registry.create(product, installation)
            ref = reconciler.get_preflight_object(namespace)
            if ref is not None:
                candidates.append((product, ref))
        return candidates

    async def _fail(self, installation: Installation, message: str) -> None:
        installation.status.preflight_status = PreflightStatus.FAIL
        installation.status.preflight_message = message
        self.logger.info(message)
        await self.persister.write_status(installation)
