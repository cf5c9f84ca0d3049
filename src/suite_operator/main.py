"""FastAPI application for the suite installation operator."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
import uvicorn

from suite_operator.api.routes import router
from suite_operator.config.settings import Settings, load_settings
from suite_operator.models.installation import Installation, InstallationSpec, ObjectMeta
from suite_operator.services.http_store import HttpObjectStore
from suite_operator.services.orchestrator import InstallationOrchestrator
from suite_operator.services.products.registry import default_registry
from suite_operator.services.reporter import EventReporter
from suite_operator.services.store import AlreadyExistsError, MemoryObjectStore, ObjectStore
from suite_operator.services.work_queue import ReconcileQueue
from suite_operator.utils.logging import setup_from_settings


def build_store(settings: Settings) -> ObjectStore:
    """Remote store if a URL is configured, in-process store otherwise."""
    if settings.store_url:
        return HttpObjectStore(settings.store_url, timeout=settings.store_timeout_seconds)
    return MemoryObjectStore()


async def ensure_default_installation(
    store: ObjectStore, settings: Settings
) -> Optional[Installation]:
    """Create the default installation when the watch namespace holds none.

    Returns:
        The created installation, or None if one already existed
    """
    logger = logging.getLogger("suite_operator.main")
    logger.info(f"Looking for installation in {settings.watch_namespace} namespace")

    existing = await store.list_installations(settings.watch_namespace)
    if existing:
        return None

    logger.info(
        f"Creating a {settings.installation_type} installation as none was found "
        f"in {settings.watch_namespace} namespace"
    )
    installation = Installation(
        metadata=ObjectMeta(name=settings.installation_name, namespace=settings.watch_namespace),
        spec=InstallationSpec(
            type=settings.installation_type,
            namespace_prefix=settings.namespace_prefix,
            self_signed_certs=settings.self_signed_certs,
        ),
    )
    try:
        return await store.create_installation(installation)
    except AlreadyExistsError:
        logger.info(f"Installation {installation.key} was created concurrently")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Load settings and initialize logger
    - Build store, product registry, orchestrator and reconcile queue
    - Create the default installation if none exists
    - Queue every installation in the watch namespace and start workers

    Shutdown:
    - Stop workers and close the store client
    """
    # Startup
    settings = load_settings()
    logger = setup_from_settings(settings)
    logger.info("Suite operator starting up...")

    store = build_store(settings)
    orchestrator = InstallationOrchestrator(
        store,
        default_registry(),
        settings,
        reporter=EventReporter(settings.event_report_url),
    )
    queue = ReconcileQueue(
        orchestrator.reconcile_key,
        workers=settings.workers,
        failure_base_delay=settings.failure_base_delay_seconds,
        failure_max_delay=settings.failure_max_delay_seconds,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = orchestrator
    app.state.queue = queue

    await ensure_default_installation(store, settings)
    for installation in await store.list_installations(settings.watch_namespace):
        queue.add(installation.key)
    await queue.start()

    logger.info(f"Suite operator ready on port {settings.api_port}")

    yield

    # Shutdown
    logger.info("Suite operator shutting down...")
    await queue.stop()
    if isinstance(store, HttpObjectStore):
        await store.aclose()


# Create FastAPI application
app = FastAPI(
    title="Suite Operator",
    description="Staged installation and teardown of a multi-product suite",
    version="1.0.0",
    lifespan=lifespan,
)

# Register API routes
app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "suite-operator", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    settings = load_settings()
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
