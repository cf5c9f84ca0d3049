"""Bootstrap stage: cluster-wide prerequisites shared by all products."""

import logging
import secrets
import string

from suite_operator.models.installation import Installation
from suite_operator.models.resource import ResourceRef
from suite_operator.models.status import Phase
from suite_operator.services.context import ReconcileContext
from suite_operator.services.store import NotFoundError, ObjectStore

OAUTH_CLIENT_PRODUCTS = ("rhsso", "rhssouser", "3scale")
CONSOLE_ROUTE = ResourceRef(kind="Route", name="console", namespace="openshift-console")
SECRET_ALPHABET = string.ascii_letters + string.digits


class BootstrapError(Exception):
    """Bootstrap prerequisites could not be reconciled."""


def generate_secret(length: int = 32) -> str:
    return "".join(secrets.choice(SECRET_ALPHABET) for _ in range(length))


class BootstrapReconciler:
    """Reconciles OAuth client secrets and discovers cluster routing.

    Populates ``spec.master_url`` and ``spec.routing_subdomain`` which later
    stages use to build product hosts.
    """

    def __init__(self, oauth_client_secrets_name: str = "oauth-client-secrets"):
        self.logger = logging.getLogger("suite_operator.products.bootstrap")
        self.oauth_client_secrets_name = oauth_client_secrets_name

    async def reconcile(
        self, ctx: ReconcileContext, installation: Installation, store: ObjectStore
    ) -> Phase:
        """Run both bootstrap steps.

        Raises:
            BootstrapError: If the console route cannot be found
            StoreError: On object store failures
        """
        self.logger.info("Reconciling bootstrap stage")

        await self._reconcile_oauth_secrets(ctx, installation, store)
        await self._retrieve_console_url_and_subdomain(installation, store)

        self.logger.info("Bootstrap stage reconciled successfully")
        return Phase.COMPLETED

    async def _reconcile_oauth_secrets(
        self, ctx: ReconcileContext, installation: Installation, store: ObjectStore
    ) -> None:
        ref = ResourceRef(
            kind="Secret",
            name=self.oauth_client_secrets_name,
            namespace=installation.metadata.namespace,
        )
        try:
            secret = await store.get_resource(ref)
        except NotFoundError:
            secret = {}
        data = dict(secret.get("data") or {})

        changed = False
        for product in OAUTH_CLIENT_PRODUCTS:
            if product in data:
                continue
            client_ref = ResourceRef(
                kind="OAuthClient", name=f"{installation.spec.namespace_prefix}{product}"
            )
            try:
                oauth_client = await store.get_resource(client_ref)
                data[product] = oauth_client["secret"]
                # Secret object was deleted but the OAuth client survived.
                self.logger.warning(f"OAuth client secret for {product} recovered from {client_ref}")
            except (NotFoundError, KeyError):
                data[product] = generate_secret()
            changed = True

        if changed or not secret:
            ctx.raise_if_cancelled()
            await store.apply_resource(ref, {"data": data})
            self.logger.info("Bootstrap OAuth client secrets successfully reconciled")

    async def _retrieve_console_url_and_subdomain(
        self, installation: Installation, store: ObjectStore
    ) -> None:
        try:
            route = await store.get_resource(CONSOLE_ROUTE)
        except NotFoundError as e:
            raise BootstrapError(f"could not find console route: {e}") from e

        ingress = (route.get("status") or {}).get("ingress") or []
        if not ingress:
            raise BootstrapError("console route has no ingress")

        installation.spec.master_url = ingress[0].get("host", "")
        installation.spec.routing_subdomain = ingress[0].get("routerCanonicalHostname", "")
