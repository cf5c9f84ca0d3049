"""Object store access layer with optimistic concurrency."""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from suite_operator.models.installation import Installation
from suite_operator.models.resource import ResourceRef


class StoreError(Exception):
    """Object store request failed."""


class NotFoundError(StoreError):
    """Requested object does not exist."""


class AlreadyExistsError(StoreError):
    """Object being created already exists."""


class ConflictError(StoreError):
    """Write rejected because the object changed since it was read."""


class ObjectStore(Protocol):
    """Remote object store consumed by the orchestrator and product reconcilers."""

    async def get_installation(self, namespace: str, name: str) -> Installation:
        ...

    async def list_installations(self, namespace: Optional[str] = None) -> list[Installation]:
        ...

    async def create_installation(self, installation: Installation) -> Installation:
        ...

    async def update_installation(self, installation: Installation) -> Installation:
        """Write metadata and spec, leaving status untouched."""
        ...

    async def update_installation_status(self, installation: Installation) -> Installation:
        """Write status only."""
        ...

    async def delete_installation(self, namespace: str, name: str) -> None:
        ...

    async def list_namespaces(self) -> list[str]:
        ...

    async def ensure_namespace(self, name: str) -> None:
        ...

    async def delete_namespace(self, name: str) -> None:
        ...

    async def get_resource(self, ref: ResourceRef) -> dict[str, Any]:
        ...

    async def resource_exists(self, ref: ResourceRef) -> bool:
        ...

    async def apply_resource(self, ref: ResourceRef, data: dict[str, Any]) -> dict[str, Any]:
        ...

    async def delete_resource(self, ref: ResourceRef) -> None:
        ...


class MemoryObjectStore:
    """In-process object store.

    Mirrors the remote store semantics the orchestrator relies on:
    - every write bumps ``resource_version``
    - a write carrying a stale ``resource_version`` raises ConflictError
    - deleting an installation with finalizers only sets ``deletion_timestamp``;
      the object is removed once its last finalizer is gone
    """

    def __init__(self):
        self.logger = logging.getLogger("suite_operator.store")
        self._installations: dict[tuple[str, str], Installation] = {}
        self._namespaces: set[str] = set()
        self._resources: dict[tuple[str, Optional[str], str], dict[str, Any]] = {}

    # --- installations ---

    async def get_installation(self, namespace: str, name: str) -> Installation:
        stored = self._installations.get((namespace, name))
        if stored is None:
            raise NotFoundError(f"Installation {namespace}/{name} not found")
        return stored.model_copy(deep=True)

    async def list_installations(self, namespace: Optional[str] = None) -> list[Installation]:
        return [
            inst.model_copy(deep=True)
            for (ns, _), inst in sorted(self._installations.items())
            if namespace is None or ns == namespace
        ]

    async def create_installation(self, installation: Installation) -> Installation:
        key = (installation.metadata.namespace, installation.metadata.name)
        if key in self._installations:
            raise AlreadyExistsError(f"Installation {installation.key} already exists")
        stored = installation.model_copy(deep=True)
        stored.metadata.resource_version = 1
        stored.metadata.deletion_timestamp = None
        self._installations[key] = stored
        self._namespaces.add(installation.metadata.namespace)
        self.logger.info(f"Created installation {installation.key}")
        return stored.model_copy(deep=True)

    async def update_installation(self, installation: Installation) -> Installation:
        stored = self._checked(installation)
        stored.metadata.finalizers = list(installation.metadata.finalizers)
        stored.spec = installation.spec.model_copy(deep=True)
        stored.metadata.resource_version += 1

        if stored.deletion_requested and not stored.metadata.finalizers:
            del self._installations[(stored.metadata.namespace, stored.metadata.name)]
            self.logger.info(f"Installation {stored.key} finalized and removed")
        return stored.model_copy(deep=True)

    async def update_installation_status(self, installation: Installation) -> Installation:
        stored = self._checked(installation)
        stored.status = installation.status.model_copy(deep=True)
        stored.metadata.resource_version += 1
        return stored.model_copy(deep=True)

    async def delete_installation(self, namespace: str, name: str) -> None:
        key = (namespace, name)
        stored = self._installations.get(key)
        if stored is None:
            raise NotFoundError(f"Installation {namespace}/{name} not found")
        if not stored.metadata.finalizers:
            del self._installations[key]
            self.logger.info(f"Removed installation {namespace}/{name}")
            return
        if stored.metadata.deletion_timestamp is None:
            stored.metadata.deletion_timestamp = datetime.now(timezone.utc)
            stored.metadata.resource_version += 1
            self.logger.info(
                f"Deletion requested for installation {namespace}/{name}, "
                f"waiting on finalizers {stored.metadata.finalizers}"
            )

    def _checked(self, installation: Installation) -> Installation:
        key = (installation.metadata.namespace, installation.metadata.name)
        stored = self._installations.get(key)
        if stored is None:
            raise NotFoundError(f"Installation {installation.key} not found")
        if stored.metadata.resource_version != installation.metadata.resource_version:
            raise ConflictError(
                f"Installation {installation.key} has been modified: "
                f"stored version {stored.metadata.resource_version}, "
                f"write version {installation.metadata.resource_version}"
            )
        return stored

    # --- namespaces ---

    async def list_namespaces(self) -> list[str]:
        return sorted(self._namespaces)

    async def ensure_namespace(self, name: str) -> None:
        if name not in self._namespaces:
            self._namespaces.add(name)
            self.logger.info(f"Created namespace {name}")

    async def delete_namespace(self, name: str) -> None:
        """Delete a namespace together with every namespaced resource in it."""
        if name not in self._namespaces:
            raise NotFoundError(f"Namespace {name} not found")
        self._namespaces.discard(name)
        for key in [k for k in self._resources if k[1] == name]:
            del self._resources[key]
        self.logger.info(f"Deleted namespace {name}")

    # --- generic resources ---

    async def get_resource(self, ref: ResourceRef) -> dict[str, Any]:
        data = self._resources.get(self._resource_key(ref))
        if data is None:
            raise NotFoundError(f"{ref} not found")
        return copy.deepcopy(data)

    async def resource_exists(self, ref: ResourceRef) -> bool:
        return self._resource_key(ref) in self._resources

    async def apply_resource(self, ref: ResourceRef, data: dict[str, Any]) -> dict[str, Any]:
        """Create or replace a resource, creating its namespace on demand."""
        if ref.namespace is not None:
            self._namespaces.add(ref.namespace)
        self._resources[self._resource_key(ref)] = copy.deepcopy(data)
        return copy.deepcopy(data)

    async def delete_resource(self, ref: ResourceRef) -> None:
        key = self._resource_key(ref)
        if key not in self._resources:
            raise NotFoundError(f"{ref} not found")
        del self._resources[key]

    @staticmethod
    def _resource_key(ref: ResourceRef) -> tuple[str, Optional[str], str]:
        return (ref.kind, ref.namespace, ref.name)
