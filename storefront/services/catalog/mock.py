"""
Mock Catalog Service Implementation

Serves a fixed cafe menu from memory. Used in development mode
(ENV_MODE=development) to:
    - Browse and order without a database
    - Exercise read-failure handling (configurable failure rate)
    - Seed the SQL catalog with the same menu (see sql.seed_catalog)

Author: Storefront Team
Version: 1.0.0
"""

import asyncio
import random
import logging
from decimal import Decimal
from typing import Optional

from storefront.schemas import CategoryRecord, MenuItem
from storefront.services.catalog.base import (
    BaseCatalogService,
    CatalogReadError,
    ProductFilter,
)

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES = [
    CategoryRecord(
        id="cat-burgers",
        label="Burgers",
        slug="burgers",
        icon="lunch_dining",
        description="Juicy beef, chicken, and vegan burger options.",
        display_order=1,
    ),
    CategoryRecord(
        id="cat-rice",
        label="Rice Bowls",
        slug="rice-bowls",
        icon="rice_bowl",
        description="Comfort bowls with house sambal.",
        display_order=2,
    ),
    CategoryRecord(
        id="cat-drinks",
        label="Drinks",
        slug="drinks",
        icon="local_cafe",
        description="Coffee, tea and fresh juices.",
        display_order=3,
    ),
]

DEFAULT_PRODUCTS = [
    MenuItem(
        id="prod-cheeseburger",
        name="Cheeseburger",
        description="Beef patty, cheddar cheese, lettuce, tomato and house sauce.",
        price=Decimal("45000"),
        image="https://images.unsplash.com/photo-1568901346375-23c9450c58cd",
        category_id="cat-burgers",
        rating=4.8,
        calories=780,
        tags=("beef", "bestseller"),
        badge="Bestseller",
    ),
    MenuItem(
        id="prod-chicken-burger",
        name="Crispy Chicken Burger",
        description="Fried chicken thigh, pickles and spicy mayo.",
        price=Decimal("42000"),
        image="https://images.unsplash.com/photo-1606755962773-d324e0a13086",
        category_id="cat-burgers",
        rating=4.6,
        calories=690,
        tags=("chicken", "spicy"),
    ),
    MenuItem(
        id="prod-nasi-goreng",
        name="Nasi Goreng Kampung",
        description="Village-style fried rice with fried egg and crackers.",
        price=Decimal("38000"),
        image="https://images.unsplash.com/photo-1512058564366-18510be2db19",
        category_id="cat-rice",
        rating=4.7,
        calories=620,
        tags=("rice", "spicy", "local"),
        badge="Chef's Pick",
    ),
    MenuItem(
        id="prod-rice-bowl",
        name="Chicken Teriyaki Bowl",
        description="Grilled chicken, teriyaki glaze and steamed rice.",
        price=Decimal("40000"),
        image="https://images.unsplash.com/photo-1546069901-ba9599a7e63c",
        category_id="cat-rice",
        rating=4.5,
        calories=650,
        tags=("chicken", "rice"),
    ),
    MenuItem(
        id="prod-iced-tea",
        name="Iced Tea",
        description="Fresh brewed jasmine tea over ice.",
        price=Decimal("15000"),
        image="https://images.unsplash.com/photo-1556679343-c7306c1976bc",
        category_id="cat-drinks",
        rating=4.4,
        calories=90,
        tags=("tea", "cold"),
    ),
    MenuItem(
        id="prod-kopi-susu",
        name="Es Kopi Susu",
        description="Iced espresso with palm sugar and fresh milk.",
        price=Decimal("25000"),
        image="https://images.unsplash.com/photo-1461023058943-07fcbe16d735",
        category_id="cat-drinks",
        rating=4.9,
        calories=180,
        tags=("coffee", "cold", "bestseller"),
        badge="Bestseller",
    ),
    MenuItem(
        id="prod-avocado-juice",
        name="Avocado Juice",
        description="Blended avocado with chocolate drizzle.",
        price=Decimal("28000"),
        image="https://images.unsplash.com/photo-1623065422902-30a2d299bbe4",
        category_id="cat-drinks",
        tags=("juice",),
        is_available=False,
    ),
]


class MockCatalogService(BaseCatalogService):
    """
    In-memory catalog.

    Attributes:
        failure_rate: Probability of a simulated read failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
    """

    def __init__(
        self,
        categories: Optional[list[CategoryRecord]] = None,
        products: Optional[list[MenuItem]] = None,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self._categories = list(DEFAULT_CATEGORIES if categories is None else categories)
        self._products = list(DEFAULT_PRODUCTS if products is None else products)
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency

        logger.info(
            f"MockCatalogService initialized "
            f"({len(self._categories)} categories, {len(self._products)} products, "
            f"failure_rate={failure_rate:.0%})"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def list_categories(self) -> list[CategoryRecord]:
        await self._simulate_latency()
        if self._should_fail():
            logger.warning("Mock: simulated catalog read failure (categories)")
            raise CatalogReadError("Simulated catalog read failure")
        return sorted(self._categories, key=lambda c: c.display_order)

    async def list_products(
        self,
        product_filter: Optional[ProductFilter] = None,
    ) -> list[MenuItem]:
        await self._simulate_latency()
        if self._should_fail():
            logger.warning("Mock: simulated catalog read failure (products)")
            raise CatalogReadError("Simulated catalog read failure")

        product_filter = product_filter or ProductFilter()
        products = self._products

        if product_filter.category_id:
            products = [p for p in products if p.category_id == product_filter.category_id]
        if product_filter.is_available is not None:
            products = [p for p in products if p.is_available == product_filter.is_available]
        if product_filter.search:
            term = product_filter.search.lower()
            products = [
                p for p in products
                if term in p.name.lower() or term in p.description.lower()
            ]

        return list(products)

    async def health_check(self) -> bool:
        """Mock catalog is always reachable."""
        return True
