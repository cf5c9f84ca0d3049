"""API route handlers for installation endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from suite_operator.api.models import (
    ErrorResponse,
    InstallationListResponse,
    InstallationResponse,
    InstallationSummary,
    SuccessResponse,
)
from suite_operator.services.store import NotFoundError, StoreError

router = APIRouter(prefix="/api/v1.0")
logger = logging.getLogger("suite_operator.api")


def _error(code: int, msg: str) -> JSONResponse:
    return JSONResponse(
        status_code=200, content=ErrorResponse(code=code, msg=msg).model_dump()
    )


@router.get("/installations", response_model=InstallationListResponse)
async def list_installations(request: Request):
    """GET /api/v1.0/installations - List every installation with its status.

    Response format:
        {
            "code": 200,
            "msg": "success",
            "data": [{"namespace": "...", "name": "...", "stages": {...}, ...}]
        }
    """
    store = request.app.state.store
    try:
        installations = await store.list_installations()
    except StoreError as e:
        logger.error(f"Failed to list installations: {e}")
        return _error(500, f"Failed to list installations: {e}")

    return InstallationListResponse(
        data=[InstallationSummary.from_installation(i) for i in installations]
    )


@router.get("/installations/{namespace}/{name}", response_model=InstallationResponse)
async def get_installation(namespace: str, name: str, request: Request):
    """GET /api/v1.0/installations/{namespace}/{name} - Current installation status.

    Response format (not found):
        {
            "code": 404,
            "msg": "Installation suite-operator/missing not found"
        }
    """
    store = request.app.state.store
    try:
        installation = await store.get_installation(namespace, name)
    except NotFoundError:
        return _error(404, f"Installation {namespace}/{name} not found")
    except StoreError as e:
        logger.error(f"Failed to read installation {namespace}/{name}: {e}")
        return _error(500, f"Failed to read installation: {e}")

    return InstallationResponse(data=InstallationSummary.from_installation(installation))


@router.post("/installations/{namespace}/{name}/reconcile", response_model=SuccessResponse)
async def post_reconcile(namespace: str, name: str, request: Request):
    """POST /api/v1.0/installations/{namespace}/{name}/reconcile - Queue a reconcile now."""
    key = f"{namespace}/{name}"
    request.app.state.queue.add(key)
    logger.info(f"Reconcile of {key} requested via API")
    return SuccessResponse(data={"installation": key})


@router.delete("/installations/{namespace}/{name}", response_model=SuccessResponse)
async def delete_installation(namespace: str, name: str, request: Request):
    """DELETE /api/v1.0/installations/{namespace}/{name} - Request teardown.

    Sets the deletion marker; products are removed by subsequent reconciles
    and the installation disappears once every finalizer is gone.
    """
    store = request.app.state.store
    key = f"{namespace}/{name}"
    try:
        await store.delete_installation(namespace, name)
    except NotFoundError:
        return _error(404, f"Installation {key} not found")
    except StoreError as e:
        logger.error(f"Failed to delete installation {key}: {e}")
        return _error(500, f"Failed to delete installation: {e}")

    request.app.state.queue.add(key)
    logger.info(f"Deletion of {key} requested via API")
    return SuccessResponse(data={"installation": key})
