"""Installation type templates: ordered stages of products."""

import json
from pathlib import Path
from typing import Iterable, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from suite_operator.config.settings import ConfigurationError

BOOTSTRAP_STAGE = "bootstrap"
ALL_PRODUCTS = "all"


class ProductDescriptor(BaseModel):
    """Product entry of a stage template."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Registered product name")

    @field_validator("name")
    @classmethod
    def no_dots(cls, v: str) -> str:
        """Product names are embedded in dot-separated finalizer tokens."""
        if "." in v:
            raise ValueError("Product name must not contain '.'")
        return v


class Stage(BaseModel):
    """An ordered group of products that must all complete together."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Stage name")
    products: tuple[ProductDescriptor, ...] = Field(default=())

    @field_validator("products", mode="before")
    @classmethod
    def accept_plain_names(cls, v):
        """Allow ``["rhsso", ...]`` as shorthand for ``[{"name": "rhsso"}, ...]``."""
        if isinstance(v, (list, tuple)):
            return tuple({"name": p} if isinstance(p, str) else p for p in v)
        return v

    @field_validator("products")
    @classmethod
    def unique_product_names(cls, v):
        names = [p.name for p in v]
        if len(names) != len(set(names)):
            raise ValueError("Product names must be unique within a stage")
        return v


class InstallationType(BaseModel):
    """Read-only template selected once per reconcile."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    stages: tuple[Stage, ...] = Field(..., min_length=1)

    @field_validator("stages")
    @classmethod
    def unique_stage_names(cls, v):
        names = [s.name for s in v]
        if len(names) != len(set(names)):
            raise ValueError("Stage names must be unique")
        products = [p.name for s in v for p in s.products]
        if len(products) != len(set(products)):
            raise ValueError("A product may appear in only one stage")
        return v

    def product_names(self) -> list[str]:
        return [p.name for stage in self.stages for p in stage.products]


DEFAULT_INSTALLATION_TYPES: dict[str, dict] = {
    "managed": {
        "stages": [
            {"name": BOOTSTRAP_STAGE, "products": []},
            {"name": "cloud-resources", "products": ["cloud-resources"]},
            {"name": "monitoring", "products": ["monitoring"]},
            {"name": "authentication", "products": ["rhsso"]},
            {
                "name": "products",
                "products": [
                    "rhssouser",
                    "codeready-workspaces",
                    "fuse-on-openshift",
                    "amqonline",
                    "3scale",
                    "ups",
                ],
            },
            {"name": "solution-explorer", "products": ["solution-explorer"]},
        ]
    },
    "workshop": {
        "stages": [
            {"name": BOOTSTRAP_STAGE, "products": []},
            {"name": "monitoring", "products": ["monitoring"]},
            {"name": "authentication", "products": ["rhsso"]},
            {
                "name": "products",
                "products": [
                    "rhssouser",
                    "codeready-workspaces",
                    "fuse",
                    "fuse-on-openshift",
                    "amqonline",
                    "amqstreams",
                    "3scale",
                    "ups",
                ],
            },
            {"name": "solution-explorer", "products": ["solution-explorer"]},
        ]
    },
}


def parse_installation_types(raw: dict) -> dict[str, InstallationType]:
    """Validate a ``{type name: {"stages": [...]}}`` mapping.

    Raises:
        ConfigurationError: If any template is malformed
    """
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError("Installation types must be a non-empty object")

    types: dict[str, InstallationType] = {}
    for name, template in raw.items():
        if not isinstance(template, dict):
            raise ConfigurationError(f"Installation type {name} must be an object")
        try:
            types[name] = InstallationType(name=name, **template)
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"Malformed installation type {name}: {e}") from e
    return types


def load_installation_types(path: Optional[str] = None) -> dict[str, InstallationType]:
    """Load templates from a JSON file, or the built-in ones if no path is given.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    if not path:
        return parse_installation_types(DEFAULT_INSTALLATION_TYPES)

    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Installation types file not found: {path}")
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid installation types JSON: {e}") from e
    return parse_installation_types(raw)


def installation_type_factory(
    type_name: str,
    products: Iterable[str],
    installation_types: Optional[dict[str, InstallationType]] = None,
) -> InstallationType:
    """Select the template for an installation and narrow it to the configured products.

    Args:
        type_name: ``spec.type`` of the installation
        products: Products to install; empty or containing "all" keeps every product
        installation_types: Templates to choose from (built-in ones if None)

    Returns:
        InstallationType with only the selected products. The bootstrap stage is
        always kept; other stages left without products are dropped.

    Raises:
        ConfigurationError: If the type is unknown
    """
    if installation_types is None:
        installation_types = load_installation_types()

    template = installation_types.get(type_name)
    if template is None:
        raise ConfigurationError(f"Unknown installation type: {type_name}")

    wanted = set(products)
    if not wanted or ALL_PRODUCTS in wanted:
        return template

    stages = []
    for stage in template.stages:
        kept = tuple(p for p in stage.products if p.name in wanted)
        if kept or stage.name == BOOTSTRAP_STAGE:
            stages.append(Stage(name=stage.name, products=kept))

    if not stages:
        raise ConfigurationError(
            f"No stages left in installation type {type_name} for products {sorted(wanted)}"
        )
    return InstallationType(name=template.name, stages=tuple(stages))
