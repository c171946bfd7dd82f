"""
Local Order History Cache

Device-local, unauthenticated list of past orders, stored most recent
first under a single storage key. Independent of the orders table: a
customer can reopen old receipts without a backend round trip.

Unreadable storage reads as an empty history (load_failed is set and the
error is logged) rather than breaking the page.
"""

import json
import logging
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from storefront.schemas import OrderRecord
from storefront.services.storage import BaseStorage, StorageError

logger = logging.getLogger(__name__)

HISTORY_KEY = "paypya_orders"

_orders_adapter = TypeAdapter(list[OrderRecord])


class LocalOrderHistory:
    """Append-only (prepend-only) history of orders placed on this device."""

    def __init__(self, storage: BaseStorage, key: str = HISTORY_KEY):
        self._storage = storage
        self._key = key
        self.load_failed = False

    def _read(self) -> list[OrderRecord]:
        try:
            raw = self._storage.get(self._key)
            if not raw:
                self.load_failed = False
                return []
            orders = _orders_adapter.validate_json(raw)
        except (StorageError, ValidationError, ValueError) as e:
            logger.error(f"Failed to load order history: {e}")
            self.load_failed = True
            return []
        self.load_failed = False
        return orders

    def record(self, order: OrderRecord) -> None:
        """
        Prepend a copy of order.

        Entries are never merged, even when the order number repeats.

        Raises:
            StorageError: If the history cannot be written
        """
        existing = self._read()
        payload = [order] + existing
        self._storage.set(
            self._key,
            json.dumps(_orders_adapter.dump_python(payload, mode="json"), ensure_ascii=False),
        )
        logger.debug(f"History: recorded {order.order_number} ({len(payload)} entries)")

    def list(self) -> list[OrderRecord]:
        """Every stored order, most recent first."""
        return self._read()

    def find_by_order_number(self, order_number: str) -> Optional[OrderRecord]:
        for order in self._read():
            if order.order_number == order_number:
                return order
        return None

    def find_by_id(self, order_id: str) -> Optional[OrderRecord]:
        for order in self._read():
            if order.id == order_id:
                return order
        return None
