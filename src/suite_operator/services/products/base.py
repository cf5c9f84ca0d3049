"""Product reconciler contract and shared finalizer handling."""

import logging
from typing import Awaitable, Callable, Optional, Protocol

from suite_operator.models.installation import Installation, ProductStatus
from suite_operator.models.resource import ResourceRef
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileContext
from suite_operator.services.store import ObjectStore

FINALIZER_PREFIX = "finalizer."
FINALIZER_SUFFIX = ".suite-operator.io"


def product_finalizer(product: str) -> str:
    """Finalizer token owned by a product, e.g. ``finalizer.rhsso.suite-operator.io``."""
    return f"{FINALIZER_PREFIX}{product}{FINALIZER_SUFFIX}"


def product_from_finalizer(token: str) -> Optional[str]:
    """Return the product a finalizer token belongs to, or None for foreign tokens."""
    if not (token.startswith(FINALIZER_PREFIX) and token.endswith(FINALIZER_SUFFIX)):
        return None
    product = token[len(FINALIZER_PREFIX):-len(FINALIZER_SUFFIX)]
    if not product or "." in product:
        return None
    return product


class ProductReconciler(Protocol):
    """Capabilities the orchestrator needs from every product."""

    async def reconcile(
        self,
        ctx: ReconcileContext,
        installation: Installation,
        product_status: ProductStatus,
        store: ObjectStore,
    ) -> Phase:
        """Drive the product one step toward its desired state.

        Must be idempotent. When ``installation.deletion_requested`` is set the
        product tears down its resources and removes its own finalizer instead.
        Raises on error.
        """
        ...

    def get_preflight_object(self, namespace: str) -> Optional[ResourceRef]:
        """Object whose presence in ``namespace`` means a conflicting install."""
        ...


class BaseProductReconciler:
    """Convenience base for product reconcilers.

    Subclasses set ``product_name`` and implement ``reconcile``; they call
    ``reconcile_finalizer`` first thing to get deletion handling for free.
    """

    product_name: str = ""

    def __init__(self, installation: Installation):
        self.installation = installation
        self.logger = logging.getLogger(f"suite_operator.products.{self.product_name}")

    @property
    def finalizer(self) -> str:
        return product_finalizer(self.product_name)

    def get_preflight_object(self, namespace: str) -> Optional[ResourceRef]:
        return None

    async def reconcile_finalizer(
        self,
        ctx: ReconcileContext,
        installation: Installation,
        store: ObjectStore,
        teardown: Callable[[], Awaitable[Phase]],
    ) -> Phase:
        """Add this product's finalizer, or run teardown once deletion is requested.

        During deletion the finalizer is removed only after ``teardown``
        reports COMPLETED.

        Returns:
            Phase of the finalizer handling; anything other than COMPLETED
            means the caller should return that phase immediately
        """
        if installation.deletion_requested:
            if not installation.has_finalizer(self.finalizer):
                return Phase.COMPLETED
            phase = await teardown()
            if phase != Phase.COMPLETED:
                self.logger.info(f"Teardown of {self.product_name} in progress: {phase.value}")
                return phase
            installation.remove_finalizer(self.finalizer)
            stored = await store.update_installation(installation)
            installation.metadata.resource_version = stored.metadata.resource_version
            self.logger.info(f"Removed finalizer {self.finalizer}")
            return Phase.COMPLETED

        if installation.add_finalizer(self.finalizer):
            ctx.raise_if_cancelled()
            stored = await store.update_installation(installation)
            installation.metadata.resource_version = stored.metadata.resource_version
            self.logger.info(f"Added finalizer {self.finalizer}")
        return Phase.COMPLETED
