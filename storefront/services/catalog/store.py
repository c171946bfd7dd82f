"""
Catalog Store

Holds the categories and products fetched once from the catalog service
and answers every storefront read from memory: lookup by id, category
tabs, free-text search and page slicing.

A failed fetch leaves the store empty with load_failed set, so the
surrounding view can show a "failed to load" state instead of crashing.
"""

import logging
import math
from dataclasses import dataclass
from typing import Generic, Optional, Sequence, TypeVar

from storefront.schemas import CategoryRecord, MenuItem
from storefront.services.catalog.base import (
    BaseCatalogService,
    CatalogReadError,
    ProductFilter,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of an already-fetched list."""
    items: list[T]
    page: int
    total_pages: int
    total: int


def paginate(items: Sequence[T], page: int, per_page: int) -> Page[T]:
    """
    Slice a list into pages (1-based).

    Pages past the end are clamped to the last page; an empty list has
    a single empty page.
    """
    if per_page < 1:
        raise ValueError("per_page must be at least 1")

    total = len(items)
    total_pages = max(1, math.ceil(total / per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    return Page(
        items=list(items[start:start + per_page]),
        page=page,
        total_pages=total_pages,
        total=total,
    )


class CatalogStore:
    """Session-wide, read-only copy of the menu."""

    def __init__(self, service: BaseCatalogService):
        self._service = service
        self._categories: list[CategoryRecord] = []
        self._products: list[MenuItem] = []
        self._by_id: dict[str, MenuItem] = {}
        self.loaded = False
        self.load_failed = False
        self.error_message: Optional[str] = None

    async def load(self, available_only: bool = True) -> bool:
        """
        Fetch categories and products once.

        Returns:
            True when both lists were fetched, False on a read failure
            (the store is then empty and load_failed is set).
        """
        try:
            categories = await self._service.list_categories()
            products = await self._service.list_products(
                ProductFilter(is_available=True if available_only else None)
            )
        except CatalogReadError as e:
            logger.error(f"Error loading catalog: {e}")
            self._categories, self._products, self._by_id = [], [], {}
            self.loaded = False
            self.load_failed = True
            self.error_message = "Failed to load menu data. Please refresh the page."
            return False

        self._categories = categories
        self._products = products
        self._by_id = {item.id: item for item in products}
        self.loaded = True
        self.load_failed = False
        self.error_message = None
        logger.info(
            f"Catalog loaded from {self._service.provider_name}: "
            f"{len(categories)} categories, {len(products)} products"
        )
        return True

    async def ensure_loaded(self) -> bool:
        if self.loaded:
            return True
        return await self.load()

    # =========================================================================
    # READS
    # =========================================================================

    def categories(self) -> list[CategoryRecord]:
        return list(self._categories)

    def products(self) -> list[MenuItem]:
        return list(self._products)

    def get(self, item_id: str) -> Optional[MenuItem]:
        return self._by_id.get(item_id)

    def default_category_id(self) -> Optional[str]:
        """The first tab shown when the menu opens."""
        return self._categories[0].id if self._categories else None

    def by_category(self, category_id: str) -> list[MenuItem]:
        return [item for item in self._products if item.category_id == category_id]

    def search(self, query: str) -> list[MenuItem]:
        """Case-insensitive match on name, description or any tag."""
        term = query.lower().strip()
        if not term:
            return []
        return [
            item for item in self._products
            if term in item.name.lower()
            or term in item.description.lower()
            or any(term in tag.lower() for tag in (item.tags or ()))
        ]

    def filter(
        self,
        category_id: Optional[str] = None,
        query: Optional[str] = None,
    ) -> list[MenuItem]:
        """
        Storefront listing: a non-blank search spans every category,
        otherwise the selected (or first) category is shown.
        """
        if query and query.strip():
            return self.search(query)
        category_id = category_id or self.default_category_id()
        if category_id is None:
            return []
        return self.by_category(category_id)

    def page(
        self,
        category_id: Optional[str] = None,
        query: Optional[str] = None,
        page: int = 1,
        per_page: int = 8,
    ) -> Page[MenuItem]:
        return paginate(self.filter(category_id, query), page, per_page)
