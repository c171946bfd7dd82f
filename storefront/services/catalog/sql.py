"""
SQL Catalog Service Implementation

Reads categories and products from the database through the SQLAlchemy
async session factory. Used when ENV_MODE=production or ENV_MODE=staging.

Author: Storefront Team
Version: 1.0.0
"""

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.models import Category, Product
from storefront.schemas import CategoryRecord, MenuItem
from storefront.services.catalog.base import (
    BaseCatalogService,
    CatalogReadError,
    ProductFilter,
)
from storefront.services.catalog.mock import DEFAULT_CATEGORIES, DEFAULT_PRODUCTS

logger = logging.getLogger(__name__)


class SqlCatalogService(BaseCatalogService):
    """Catalog backed by the categories and products tables."""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_maker is None:
            from storefront.database import async_session_maker
            session_maker = async_session_maker
        self._session_maker = session_maker
        logger.info("SqlCatalogService initialized")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def list_categories(self) -> list[CategoryRecord]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Category).order_by(Category.display_order.asc())
                )
                return [CategoryRecord.from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching categories: {e}")
            raise CatalogReadError(str(e)) from e

    async def list_products(
        self,
        product_filter: Optional[ProductFilter] = None,
    ) -> list[MenuItem]:
        product_filter = product_filter or ProductFilter()
        query = select(Product).order_by(Product.created_at.desc())

        if product_filter.category_id:
            query = query.where(Product.category_id == product_filter.category_id)
        if product_filter.is_available is not None:
            query = query.where(Product.is_available == product_filter.is_available)
        if product_filter.search:
            term = f"%{product_filter.search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Product.name).like(term),
                    func.lower(Product.description).like(term),
                )
            )

        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return [MenuItem.from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching products: {e}")
            raise CatalogReadError(str(e)) from e

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.count(Category.id)))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Catalog health check failed: {e}")
            return False


async def seed_catalog(session_maker: async_sessionmaker[AsyncSession]) -> int:
    """
    Insert the default menu when the catalog is empty.

    Returns:
        Number of products inserted (0 if the catalog already had rows)
    """
    async with session_maker() as session:
        existing = await session.execute(select(func.count(Product.id)))
        if (existing.scalar() or 0) > 0:
            return 0

        for category in DEFAULT_CATEGORIES:
            session.add(Category(
                id=category.id,
                name=category.label,
                slug=category.slug,
                icon=category.icon,
                description=category.description,
                display_order=category.display_order,
            ))
        for item in DEFAULT_PRODUCTS:
            session.add(Product(
                id=item.id,
                category_id=item.category_id,
                name=item.name,
                description=item.description,
                price=item.price,
                image_url=item.image,
                badge=item.badge,
                rating=item.rating,
                calories=item.calories,
                tags=list(item.tags) if item.tags else None,
                is_available=item.is_available,
            ))
        await session.commit()

    logger.info(f"Seeded catalog with {len(DEFAULT_PRODUCTS)} products")
    return len(DEFAULT_PRODUCTS)
