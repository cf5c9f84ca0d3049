"""Tests for API routes (routes.py)."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from suite_operator.api.routes import router
from suite_operator.models.installation import Installation, InstallationSpec, ObjectMeta
from suite_operator.services.store import MemoryObjectStore, StoreError


# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------

def _make_installation(name="suite", finalizers=None):
    return Installation(
        metadata=ObjectMeta(name=name, namespace="ops", finalizers=finalizers or []),
        spec=InstallationSpec(type="managed"),
    )


def _make_app(store):
    app = FastAPI()
    app.include_router(router)
    app.state.store = store
    app.state.queue = MagicMock()
    return app


# -----------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------

@pytest.fixture
def memory_store():
    store = MemoryObjectStore()
    asyncio.run(store.create_installation(_make_installation(finalizers=["example.com/hold"])))
    return store


@pytest.fixture
def app(memory_store):
    return _make_app(memory_store)


@pytest.fixture
def client(app):
    return TestClient(app)


# -----------------------------------------------------------------------
# GET /installations
# -----------------------------------------------------------------------

@pytest.mark.unit
class TestListInstallations:

    def test_lists_installations(self, client):
        resp = client.get("/api/v1.0/installations")

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 200
        assert body["msg"] == "success"
        assert [i["name"] for i in body["data"]] == ["suite"]
        assert body["data"][0]["preflight_status"] == ""

    def test_store_failure(self):
        store = AsyncMock()
        store.list_installations.side_effect = StoreError("store unreachable")
        client = TestClient(_make_app(store))

        resp = client.get("/api/v1.0/installations")

        assert resp.status_code == 200
        assert resp.json()["code"] == 500
        assert "store unreachable" in resp.json()["msg"]


# -----------------------------------------------------------------------
# GET /installations/{namespace}/{name}
# -----------------------------------------------------------------------

@pytest.mark.unit
class TestGetInstallation:

    def test_found(self, client):
        resp = client.get("/api/v1.0/installations/ops/suite")

        data = resp.json()["data"]
        assert data["namespace"] == "ops"
        assert data["type"] == "managed"
        assert data["deletion_requested"] is False
        assert data["finalizers"] == ["example.com/hold"]

    def test_not_found(self, client):
        resp = client.get("/api/v1.0/installations/ops/missing")

        assert resp.status_code == 200
        assert resp.json() == {"code": 404, "msg": "Installation ops/missing not found"}


# -----------------------------------------------------------------------
# POST /installations/{namespace}/{name}/reconcile
# -----------------------------------------------------------------------

@pytest.mark.unit
class TestReconcileEndpoint:

    def test_queues_key(self, app, client):
        resp = client.post("/api/v1.0/installations/ops/suite/reconcile")

        assert resp.json()["code"] == 200
        assert resp.json()["data"] == {"installation": "ops/suite"}
        app.state.queue.add.assert_called_once_with("ops/suite")


# -----------------------------------------------------------------------
# DELETE /installations/{namespace}/{name}
# -----------------------------------------------------------------------

@pytest.mark.unit
class TestDeleteEndpoint:

    def test_marks_for_deletion_and_queues(self, app, client):
        """Finalizers keep the object; only the deletion marker is set."""
        resp = client.delete("/api/v1.0/installations/ops/suite")

        assert resp.json()["code"] == 200
        app.state.queue.add.assert_called_once_with("ops/suite")
        follow = client.get("/api/v1.0/installations/ops/suite").json()["data"]
        assert follow["deletion_requested"] is True

    def test_delete_missing(self, app, client):
        resp = client.delete("/api/v1.0/installations/ops/missing")

        assert resp.json()["code"] == 404
        app.state.queue.add.assert_not_called()
