"""
Catalog Service Factory

Provides a single entry point for obtaining a catalog service instance.
Automatically selects the in-memory or SQL catalog based on ENV_MODE.

Usage:
    from storefront.services.catalog import get_catalog_service, CatalogStore

    store = CatalogStore(get_catalog_service())
    await store.load()
    page = store.page(category_id="cat-burgers", page=1)

Environment Switching:
    - ENV_MODE=development → MockCatalogService (fixed menu)
    - ENV_MODE=staging / production → SqlCatalogService

Author: Storefront Team
Version: 1.0.0
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.catalog.base import (
    BaseCatalogService,
    CatalogReadError,
    ProductFilter,
)
from storefront.services.catalog.mock import MockCatalogService
from storefront.services.catalog.store import CatalogStore, Page, paginate

logger = logging.getLogger(__name__)


@lru_cache()
def get_catalog_service() -> BaseCatalogService:
    """
    Get the configured catalog service instance.

    Returns:
        BaseCatalogService: MockCatalogService in development,
        SqlCatalogService otherwise
    """
    settings = get_settings()

    if settings.use_database:
        from storefront.services.catalog.sql import SqlCatalogService

        logger.info(
            f"Catalog Service: Using SqlCatalogService "
            f"({settings.env_mode.value} mode)"
        )
        return SqlCatalogService()

    logger.info("Catalog Service: Using MockCatalogService (development mode)")
    return MockCatalogService(min_latency=0.05, max_latency=0.2)


def reset_catalog_service() -> None:
    """
    Clear the cached catalog service instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_catalog_service.cache_clear()
    logger.debug("Catalog service cache cleared")


__all__ = [
    "get_catalog_service",
    "reset_catalog_service",
    "BaseCatalogService",
    "CatalogReadError",
    "ProductFilter",
    "MockCatalogService",
    "CatalogStore",
    "Page",
    "paginate",
]
