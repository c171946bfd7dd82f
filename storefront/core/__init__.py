"""
Core module initialization.
Exports configuration, logging utilities and shared exceptions.
"""

from storefront.core.config import get_settings, Settings, EnvironmentMode
from storefront.core.exceptions import (
    StorefrontError,
    CartValidationError,
    OrderPersistenceError,
    InvalidTransitionError,
    OrderNotFoundError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "StorefrontError",
    "CartValidationError",
    "OrderPersistenceError",
    "InvalidTransitionError",
    "OrderNotFoundError",
]
