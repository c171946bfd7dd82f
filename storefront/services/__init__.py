"""
                        Services Module

Contains all business logic with the hybrid architecture pattern.
Backend-facing services have Mock (development) and SQL (production)
implementations.

Services:
    - catalog: Menu categories and products, plus the in-memory CatalogStore
    - orders: Order persistence, status machines and back-office views
    - cart / checkout: Cart aggregate and order submission workflow
    - history / session / storage: Per-device durable state
    - invoice: Printable, exportable and shareable invoices
    - ledger: Process-safe Excel ledger of placed orders
"""

from storefront.services.ledger import OrderLedger

__all__ = ["OrderLedger"]
