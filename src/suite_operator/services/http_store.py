"""HTTP client for a remote REST object store."""

import logging
from typing import Any, Optional

import httpx

from suite_operator.models.installation import Installation
from suite_operator.models.resource import ResourceRef
from suite_operator.services.store import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
)

CLUSTER_SCOPE = "_cluster"


class HttpObjectStore:
    """ObjectStore backed by a REST API.

    Endpoint layout (relative to ``base_url``):
        GET    /installations[?namespace=ns]
        POST   /installations
        GET    /installations/{ns}/{name}
        PUT    /installations/{ns}/{name}           metadata + spec
        PUT    /installations/{ns}/{name}/status    status only
        DELETE /installations/{ns}/{name}
        GET    /namespaces
        PUT    /namespaces/{name}
        DELETE /namespaces/{name}
        GET|PUT|DELETE /resources/{kind}/{ns or _cluster}/{name}

    The server compares ``metadata.resource_version`` on writes and answers
    409 on mismatch.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize store client.

        Args:
            base_url: Root URL of the object store API
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.logger = logging.getLogger("suite_operator.http_store")
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request and translate failures into store errors.

        Raises:
            NotFoundError: On 404
            ConflictError: On 409 for updates
            AlreadyExistsError: On 409 for creates
            StoreError: On any other HTTP or transport failure
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {path}: not found")
        if response.status_code == 409:
            if method == "POST":
                raise AlreadyExistsError(f"{method} {path}: already exists")
            raise ConflictError(f"{method} {path}: {response.text}")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e
        return response

    @staticmethod
    def _resource_path(ref: ResourceRef) -> str:
        return f"/resources/{ref.kind}/{ref.namespace or CLUSTER_SCOPE}/{ref.name}"

    # --- installations ---

    async def get_installation(self, namespace: str, name: str) -> Installation:
        response = await self._request("GET", f"/installations/{namespace}/{name}")
        return Installation.model_validate(response.json())

    async def list_installations(self, namespace: Optional[str] = None) -> list[Installation]:
        params = {"namespace": namespace} if namespace else None
        response = await self._request("GET", "/installations", params=params)
        return [Installation.model_validate(item) for item in response.json()]

    async def create_installation(self, installation: Installation) -> Installation:
        response = await self._request(
            "POST", "/installations", json=installation.model_dump(mode="json")
        )
        return Installation.model_validate(response.json())

    async def update_installation(self, installation: Installation) -> Installation:
        payload = installation.model_dump(mode="json", exclude={"status"})
        response = await self._request(
            "PUT",
            f"/installations/{installation.metadata.namespace}/{installation.metadata.name}",
            json=payload,
        )
        if response.status_code == 204:
            # Last finalizer removed, the server dropped the object.
            return installation
        return Installation.model_validate(response.json())

    async def update_installation_status(self, installation: Installation) -> Installation:
        payload = {
            "metadata": installation.metadata.model_dump(mode="json"),
            "status": installation.status.model_dump(mode="json"),
        }
        response = await self._request(
            "PUT",
            f"/installations/{installation.metadata.namespace}/{installation.metadata.name}/status",
            json=payload,
        )
        return Installation.model_validate(response.json())

    async def delete_installation(self, namespace: str, name: str) -> None:
        await self._request("DELETE", f"/installations/{namespace}/{name}")

    # --- namespaces ---

    async def list_namespaces(self) -> list[str]:
        response = await self._request("GET", "/namespaces")
        return list(response.json())

    async def ensure_namespace(self, name: str) -> None:
        await self._request("PUT", f"/namespaces/{name}")

    async def delete_namespace(self, name: str) -> None:
        await self._request("DELETE", f"/namespaces/{name}")

    # --- generic resources ---

    async def get_resource(self, ref: ResourceRef) -> dict[str, Any]:
        response = await self._request("GET", self._resource_path(ref))
        return response.json()

    async def resource_exists(self, ref: ResourceRef) -> bool:
        try:
            await self._request("GET", self._resource_path(ref))
        except NotFoundError:
            return False
        return True

    async def apply_resource(self, ref: ResourceRef, data: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("PUT", self._resource_path(ref), json=data)
        return response.json()

    async def delete_resource(self, ref: ResourceRef) -> None:
        await self._request("DELETE", self._resource_path(ref))
