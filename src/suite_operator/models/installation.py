"""Installation aggregate persisted in the object store."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from suite_operator.models.status import Phase, PreflightStatus


class ObjectMeta(BaseModel):
    """Identity and bookkeeping fields of a stored object."""

    name: str = Field(..., min_length=1, description="Object name")
    namespace: str = Field(..., min_length=1, description="Owning namespace")
    resource_version: int = Field(
        default=0, ge=0, description="Optimistic-concurrency token"
    )
    finalizers: list[str] = Field(
        default_factory=list, description="Tokens holding off deletion"
    )
    deletion_timestamp: Optional[datetime] = Field(
        None, description="Set once deletion has been requested"
    )


class InstallationSpec(BaseModel):
    """Desired configuration of an installation."""

    type: str = Field(..., min_length=1, description="Installation type name")
    namespace_prefix: str = Field(
        default="", description="Prefix for every product namespace"
    )
    self_signed_certs: bool = Field(
        default=False, description="Cluster routes use self-signed certificates"
    )
    routing_subdomain: str = Field(
        default="", description="Router hostname, filled by bootstrap"
    )
    master_url: str = Field(default="", description="Console host, filled by bootstrap")


class ProductStatus(BaseModel):
    """Progress of a single product."""

    name: str
    phase: Phase = Phase.NONE
    host: str = ""
    version: str = ""
    operator_version: str = ""


class StageStatus(BaseModel):
    """Progress of a stage and the products inside it."""

    name: str
    phase: Phase = Phase.NONE
    products: dict[str, ProductStatus] = Field(default_factory=dict)


class InstallationStatus(BaseModel):
    """Observed state, the authoritative view of installation health."""

    preflight_status: PreflightStatus = PreflightStatus.NOT_STARTED
    preflight_message: str = ""
    stages: dict[str, StageStatus] = Field(default_factory=dict)


class Installation(BaseModel):
    """Root aggregate driven by the orchestrator."""

    metadata: ObjectMeta
    spec: InstallationSpec
    status: InstallationStatus = Field(default_factory=InstallationStatus)

    @property
    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    @property
    def deletion_requested(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def has_finalizer(self, token: str) -> bool:
        return token in self.metadata.finalizers

    def add_finalizer(self, token: str) -> bool:
        """Add a finalizer token.

        Returns:
            True if the token was added, False if it was already present
        """
        if token in self.metadata.finalizers:
            return False
        self.metadata.finalizers.append(token)
        return True

    def remove_finalizer(self, token: str) -> bool:
        """Remove a finalizer token.

        Returns:
            True if the token was removed, False if it was not present
        """
        if token not in self.metadata.finalizers:
            return False
        self.metadata.finalizers.remove(token)
        return True

    def get_product_status(self, product: str) -> ProductStatus:
        """Find the status slot of a product across all stages.

        Returns a detached slot if the product has never been reconciled.
        """
        for stage in self.status.stages.values():
            if product in stage.products:
                return stage.products[product]
        return ProductStatus(name=product)
