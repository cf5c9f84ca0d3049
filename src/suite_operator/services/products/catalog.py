"""Built-in product catalog."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductSpec(BaseModel):
    """Static description of an operator-managed product."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Product name used in stage templates")
    namespace_suffix: str = Field(..., description="Appended to the namespace prefix")
    package: str = Field(..., description="Subscription package of the product operator")
    channel: str = Field(default="integreatly", description="Subscription channel")
    version: str = Field(..., description="Product version reported in status")
    operator_version: str = Field(..., description="Operator version reported in status")
    host_prefix: Optional[str] = Field(
        None, description="Route prefix; the product exposes no host if None"
    )
    preflight_deployment: Optional[str] = Field(
        None, description="Deployment whose presence signals a conflicting install"
    )


PRODUCT_CATALOG: dict[str, ProductSpec] = {
    spec.name: spec
    for spec in [
        ProductSpec(
            name="cloud-resources",
            namespace_suffix="cloud-resources",
            package="integreatly-cloud-resources",
            version="0.10.0",
            operator_version="0.10.0",
        ),
        ProductSpec(
            name="monitoring",
            namespace_suffix="middleware-monitoring",
            package="integreatly-monitoring",
            version="1.1.0",
            operator_version="0.0.26",
            host_prefix="grafana-route",
        ),
        ProductSpec(
            name="rhsso",
            namespace_suffix="rhsso",
            package="integreatly-rhsso",
            version="7.3.2.GA",
            operator_version="1.9.2",
            host_prefix="keycloak-edge",
            preflight_deployment="keycloak-operator",
        ),
        ProductSpec(
            name="rhssouser",
            namespace_suffix="user-sso",
            package="integreatly-rhsso",
            version="7.3.2.GA",
            operator_version="1.9.2",
            host_prefix="keycloak-edge-user",
        ),
        ProductSpec(
            name="codeready-workspaces",
            namespace_suffix="codeready-workspaces",
            package="codeready-workspaces",
            version="2.0.0",
            operator_version="2.0.0",
            host_prefix="codeready",
            preflight_deployment="codeready-operator",
        ),
        ProductSpec(
            name="fuse",
            namespace_suffix="fuse",
            package="syndesis",
            version="7.5",
            operator_version="1.8.0",
            host_prefix="syndesis",
            preflight_deployment="syndesis-operator",
        ),
        ProductSpec(
            name="fuse-on-openshift",
            namespace_suffix="fuse-on-openshift",
            package="fuse-on-openshift",
            version="7.5",
            operator_version="7.5",
        ),
        ProductSpec(
            name="amqonline",
            namespace_suffix="amq-online",
            package="enmasse",
            version="1.3.1",
            operator_version="1.3.1",
            host_prefix="console",
            preflight_deployment="enmasse-operator",
        ),
        ProductSpec(
            name="amqstreams",
            namespace_suffix="amq-streams",
            package="amq-streams",
            version="1.1.0",
            operator_version="1.1.0",
            preflight_deployment="strimzi-cluster-operator",
        ),
        ProductSpec(
            name="3scale",
            namespace_suffix="3scale",
            package="integreatly-3scale",
            version="2.7",
            operator_version="0.4.0",
            host_prefix="3scale-admin",
            preflight_deployment="3scale-operator",
        ),
        ProductSpec(
            name="ups",
            namespace_suffix="ups",
            package="unifiedpush-operator",
            version="2.3.2",
            operator_version="0.4.0",
            host_prefix="ups",
        ),
        ProductSpec(
            name="solution-explorer",
            namespace_suffix="solution-explorer",
            package="integreatly-solution-explorer",
            version="2.20.0",
            operator_version="0.0.43",
            host_prefix="tutorial-web-app",
        ),
    ]
}
