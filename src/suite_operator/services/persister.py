"""Conflict-aware writes of the installation status and spec."""

import logging
from typing import Optional

from suite_operator.models.installation import Installation
from suite_operator.models.result import ReconcileResult
from suite_operator.services.store import ConflictError, ObjectStore, StoreError


class StatusPersister:
    """Writes the installation back to the store.

    A version conflict is not an error: the write is dropped and a
    fixed-delay requeue is returned so the next reconcile starts from fresh
    state. Any other store failure is raised.
    """

    def __init__(self, store: ObjectStore, requeue_delay: float = 10.0):
        self.logger = logging.getLogger("suite_operator.persister")
        self.store = store
        self.requeue_delay = requeue_delay

    async def write_status(self, installation: Installation) -> Optional[ReconcileResult]:
        """Write ``installation.status``.

        Returns:
            None on success, a requeue directive on version conflict

        Raises:
            StoreError: For failures other than a version conflict
        """
        try:
            stored = await self.store.update_installation_status(installation)
        except ConflictError as e:
            self.logger.info(
                f"Error updating installation {installation.key} status. Requeue and retry: {e}"
            )
            return ReconcileResult.after(self.requeue_delay)
        except StoreError as e:
            self.logger.error(f"Error writing installation {installation.key} status: {e}")
            raise

        installation.metadata.resource_version = stored.metadata.resource_version
        return None

    async def write_spec(self, installation: Installation) -> Optional[ReconcileResult]:
        """Write ``installation.metadata`` and ``installation.spec``.

        Returns:
            None on success, a requeue directive on version conflict

        Raises:
            StoreError: For failures other than a version conflict
        """
        try:
            stored = await self.store.update_installation(installation)
        except ConflictError as e:
            self.logger.info(
                f"Error updating installation {installation.key}. Requeue and retry: {e}"
            )
            return ReconcileResult.after(self.requeue_delay)
        except StoreError as e:
            self.logger.error(f"Error writing installation {installation.key}: {e}")
            raise

        installation.metadata.resource_version = stored.metadata.resource_version
        return None

    async def persist(self, installation: Installation) -> Optional[ReconcileResult]:
        """Write status, then spec. Stops at the first conflict."""
        result = await self.write_status(installation)
        if result is not None:
            return result
        return await self.write_spec(installation)
