"""Descriptor for objects held in the object store."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ResourceRef(BaseModel):
    """Identifies a single cluster object.

    Cluster-scoped objects (namespaces, OAuth clients) have no namespace.
    """

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., min_length=1, description="Object kind, e.g. 'Secret'")
    name: str = Field(..., min_length=1, description="Object name")
    namespace: Optional[str] = Field(None, description="Owning namespace")

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"
