"""
Catalog Service Abstract Base Class

Defines the read-only interface the storefront uses to fetch the menu.
Both the in-memory MockCatalogService and the SQL-backed SqlCatalogService
implement it, so the Catalog Store never knows where records come from.

Author: Storefront Team
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from storefront.schemas import CategoryRecord, MenuItem


@dataclass
class ProductFilter:
    """
    Server-side product filter.

    Attributes:
        category_id: Only products of this category
        is_available: Only products with this availability flag
        search: Case-insensitive match on name or description
    """
    category_id: Optional[str] = None
    is_available: Optional[bool] = None
    search: Optional[str] = None


class CatalogReadError(Exception):
    """The catalog backend could not be read."""


class BaseCatalogService(ABC):
    """Abstract base class for catalog services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g. "mock", "sql")."""
        pass

    @abstractmethod
    async def list_categories(self) -> list[CategoryRecord]:
        """
        Return all categories ordered by display order.

        Raises:
            CatalogReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def list_products(
        self,
        product_filter: Optional[ProductFilter] = None,
    ) -> list[MenuItem]:
        """
        Return products matching the filter, newest first.

        Raises:
            CatalogReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the catalog backend."""
        pass
