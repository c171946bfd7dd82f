"""
Order Repository Factory

Provides a single entry point for obtaining the order persistence service.

Usage:
    from storefront.services.orders import get_order_repository

    repository = get_order_repository()
    order_id = await repository.create_order_header(header)
    await repository.create_order_lines(order_id, lines)

Environment Switching:
    - ENV_MODE=development → MockOrderRepository (in memory)
    - ENV_MODE=staging / production → SqlOrderRepository

Author: Storefront Team
Version: 1.0.0
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.orders.base import BaseOrderRepository
from storefront.services.orders.mock import MockOrderRepository

logger = logging.getLogger(__name__)


@lru_cache()
def get_order_repository() -> BaseOrderRepository:
    """
    Get the configured order repository instance.

    The instance is cached so every request shares the same storage
    (the in-memory repository would otherwise forget orders).
    """
    settings = get_settings()

    if settings.use_database:
        from storefront.services.orders.sql import SqlOrderRepository

        logger.info(
            f"Order Repository: Using SqlOrderRepository "
            f"({settings.env_mode.value} mode)"
        )
        return SqlOrderRepository()

    logger.info("Order Repository: Using MockOrderRepository (development mode)")
    return MockOrderRepository(min_latency=0.05, max_latency=0.2)


def reset_order_repository() -> None:
    """Clear the cached repository instance."""
    get_order_repository.cache_clear()
    logger.debug("Order repository cache cleared")


__all__ = [
    "get_order_repository",
    "reset_order_repository",
    "BaseOrderRepository",
    "MockOrderRepository",
]
