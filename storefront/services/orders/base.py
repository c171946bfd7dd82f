"""
Order Persistence Service Abstract Base Class

Defines the interface contract for order storage. The header and the line
items are written by two separate calls; each call is atomic on its own,
but nothing ties the two together. A failure between them leaves an
orphaned header, which the reconciliation task cleans up later.

Design Pattern: Strategy Pattern
    - MockOrderRepository for development and tests
    - SqlOrderRepository for staging and production

Author: Storefront Team
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from datetime import datetime

from storefront.models import OrderStatus, PaymentStatus
from storefront.schemas import OrderHeaderCreate, OrderLine, OrderRecord


class BaseOrderRepository(ABC):
    """
    Abstract base class for order repositories.

    All write methods raise OrderPersistenceError when the backend
    rejects the write; lookups raise OrderNotFoundError for unknown ids;
    status changes raise InvalidTransitionError for illegal moves.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the storage provider (e.g. "mock", "sql")."""
        pass

    @abstractmethod
    async def create_order_header(self, header: OrderHeaderCreate) -> str:
        """
        Persist an order header.

        Args:
            header: Customer, table, total, payment method, order number
                and initial statuses

        Returns:
            str: Backend-assigned order id
        """
        pass

    @abstractmethod
    async def create_order_lines(self, order_id: str, lines: list[OrderLine]) -> None:
        """
        Persist the line items of an existing header, all or nothing.

        Args:
            order_id: Id returned by create_order_header
            lines: Line items with their price-at-time
        """
        pass

    @abstractmethod
    async def update_status(self, order_id: str, status: OrderStatus) -> OrderRecord:
        """Move an order along the fulfillment state machine."""
        pass

    @abstractmethod
    async def update_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus,
    ) -> OrderRecord:
        """Move an order along the payment state machine."""
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> OrderRecord:
        """Fetch one order with its line items."""
        pass

    @abstractmethod
    async def list_orders(self) -> list[OrderRecord]:
        """All orders with their line items, newest first."""
        pass

    @abstractmethod
    async def delete_order(self, order_id: str) -> None:
        """Delete an order and its line items."""
        pass

    @abstractmethod
    async def find_orphaned_headers(self, created_before: datetime) -> list[str]:
        """Ids of headers created before the cutoff that have no line items."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the storage backend."""
        pass
