"""Generic reconciler for products installed through an operator subscription."""

import asyncio
from typing import Optional

from suite_operator.models.installation import Installation, ProductStatus
from suite_operator.models.resource import ResourceRef
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileContext
from suite_operator.services.products.base import BaseProductReconciler
from suite_operator.services.products.catalog import ProductSpec
from suite_operator.services.store import NotFoundError, ObjectStore, StoreError


class OperatorProductReconciler(BaseProductReconciler):
    """Installs a product into its own namespace via a subscription.

    Normal path: finalizer → namespace → subscription → status fields.
    Deletion path: remove the product namespace, then the finalizer.
    """

    watch_interval = 5.0
    watch_attempts = 60

    def __init__(self, spec: ProductSpec, installation: Installation):
        self.product_name = spec.name
        super().__init__(installation)
        self.spec = spec
        self.namespace = f"{installation.spec.namespace_prefix}{spec.namespace_suffix}"

    @classmethod
    def factory(cls, spec: ProductSpec):
        """Registry factory bound to a catalog entry."""

        def build(installation: Installation) -> "OperatorProductReconciler":
            return cls(spec, installation)

        return build

    def get_preflight_object(self, namespace: str) -> Optional[ResourceRef]:
        if self.spec.preflight_deployment is None:
            return None
        return ResourceRef(
            kind="Deployment", name=self.spec.preflight_deployment, namespace=namespace
        )

    async def reconcile(
        self,
        ctx: ReconcileContext,
        installation: Installation,
        product_status: ProductStatus,
        store: ObjectStore,
    ) -> Phase:
        async def teardown() -> Phase:
            return await self._remove_namespace(store)

        phase = await self.reconcile_finalizer(ctx, installation, store, teardown)
        if phase != Phase.COMPLETED or installation.deletion_requested:
            return phase

        ctx.raise_if_cancelled()
        await store.ensure_namespace(self.namespace)

        phase = await self._reconcile_subscription(ctx, store)
        if phase != Phase.COMPLETED:
            return phase

        product_status.host = self._host(installation)
        product_status.version = self.spec.version
        product_status.operator_version = self.spec.operator_version

        self.logger.info(f"{self.product_name} has reconciled successfully")
        return Phase.COMPLETED

    async def _reconcile_subscription(self, ctx: ReconcileContext, store: ObjectStore) -> Phase:
        ref = ResourceRef(kind="Subscription", name=self.spec.package, namespace=self.namespace)
        try:
            subscription = await store.get_resource(ref)
        except NotFoundError:
            ctx.raise_if_cancelled()
            subscription = await store.apply_resource(
                ref,
                {
                    "package": self.spec.package,
                    "channel": self.spec.channel,
                    "installed_version": self.spec.operator_version,
                },
            )
            self.logger.info(f"Created subscription {ref}")

        if subscription.get("installed_version") != self.spec.operator_version:
            self.logger.info(
                f"Waiting for {self.spec.package} operator {self.spec.operator_version}, "
                f"found {subscription.get('installed_version')}"
            )
            self._start_subscription_watch(ctx, ref, store)
            return Phase.AWAITING_COMPONENTS
        return Phase.COMPLETED

    def _start_subscription_watch(
        self, ctx: ReconcileContext, ref: ResourceRef, store: ObjectStore
    ) -> None:
        name = f"{self.product_name}-subscription-watch"
        if ctx.is_running(name):
            return
        ctx.spawn(self._watch_subscription(ref, store), name=name)

    async def _watch_subscription(self, ref: ResourceRef, store: ObjectStore) -> bool:
        """Poll the subscription until the expected operator version is installed.

        Returns:
            True once the version matches, False if the subscription disappears
            or the attempts run out
        """
        for _ in range(self.watch_attempts):
            await asyncio.sleep(self.watch_interval)
            try:
                subscription = await store.get_resource(ref)
            except NotFoundError:
                self.logger.warning(f"Subscription {ref} removed while waiting for operator")
                return False
            except StoreError as e:
                self.logger.warning(f"Failed to read subscription {ref}: {e}")
                continue
            if subscription.get("installed_version") == self.spec.operator_version:
                self.logger.info(
                    f"{self.spec.package} operator {self.spec.operator_version} is installed"
                )
                return True
        self.logger.debug(f"Stopped watching {ref} after {self.watch_attempts} attempts")
        return False

    async def _remove_namespace(self, store: ObjectStore) -> Phase:
        try:
            await store.delete_namespace(self.namespace)
            self.logger.info(f"Deleted namespace {self.namespace}")
        except NotFoundError:
            self.logger.debug(f"Namespace {self.namespace} already gone")
        return Phase.COMPLETED

    def _host(self, installation: Installation) -> str:
        if self.spec.host_prefix is None or not installation.spec.routing_subdomain:
            return ""
        return (
            f"https://{self.spec.host_prefix}-{self.namespace}."
            f"{installation.spec.routing_subdomain}"
        )
