"""Registry mapping product names to reconciler factories."""

import logging
from typing import Callable, Iterable, Optional

from suite_operator.config.settings import ConfigurationError
from suite_operator.models.installation import Installation
from suite_operator.services.products.base import ProductReconciler

ProductFactory = Callable[[Installation], ProductReconciler]


class UnknownProductError(ConfigurationError):
    """No reconciler is registered under the requested product name."""


class ProductRegistry:
    """Builds product reconcilers by name."""

    def __init__(self):
        self.logger = logging.getLogger("suite_operator.registry")
        self._factories: dict[str, ProductFactory] = {}

    def register(self, name: str, factory: ProductFactory, replace: bool = False) -> None:
        """Register a factory for a product.

        Raises:
            ValueError: If the name is taken and ``replace`` is False
        """
        if name in self._factories and not replace:
            raise ValueError(f"Product {name} is already registered")
        self._factories[name] = factory
        self.logger.debug(f"Registered product reconciler: {name}")

    def create(self, name: str, installation: Installation) -> ProductReconciler:
        """Build the reconciler for a product.

        Raises:
            UnknownProductError: If the product is not registered
        """
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownProductError(f"Unknown product: {name}")
        return factory(installation)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def missing(self, names: Iterable[str]) -> list[str]:
        """Return the names that have no registered factory, in input order."""
        return [n for n in names if n not in self._factories]

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def default_registry(extra: Optional[dict[str, ProductFactory]] = None) -> ProductRegistry:
    """Registry holding every product in the built-in catalog.

    Args:
        extra: Additional or overriding factories
    """
    from suite_operator.services.products.catalog import PRODUCT_CATALOG
    from suite_operator.services.products.operator_product import OperatorProductReconciler

    registry = ProductRegistry()
    for spec in PRODUCT_CATALOG.values():
        registry.register(spec.name, OperatorProductReconciler.factory(spec))
    for name, factory in (extra or {}).items():
        registry.register(name, factory, replace=True)
    return registry
