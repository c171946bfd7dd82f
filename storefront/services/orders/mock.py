"""
Mock Order Repository Implementation

Keeps order headers and line items in memory. Used in development mode
(ENV_MODE=development) and throughout the test-suite to:
    - Run the full checkout flow without a database
    - Simulate header or line-item write failures (orphaned headers)
    - Count backend calls (validation must not reach the backend)

Author: Storefront Team
Version: 1.0.0
"""

import asyncio
import random
import uuid
import logging
from datetime import datetime
from typing import Any

from storefront.core.exceptions import OrderNotFoundError, OrderPersistenceError
from storefront.models import OrderStatus, PaymentStatus
from storefront.schemas import OrderHeaderCreate, OrderLine, OrderRecord
from storefront.services.orders.base import BaseOrderRepository
from storefront.services.orders.status import (
    ensure_fulfillment_transition,
    ensure_payment_transition,
)

logger = logging.getLogger(__name__)


class MockOrderRepository(BaseOrderRepository):
    """
    In-memory order repository.

    Attributes:
        failure_rate: Probability of a simulated write failure (0.0-1.0)
        fail_header: Force the next header writes to fail
        fail_lines: Force the next line-item writes to fail
        calls: Names of every backend call, in order
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.fail_header = False
        self.fail_lines = False
        self.calls: list[str] = []

        self._headers: dict[str, dict[str, Any]] = {}
        self._lines: dict[str, list[OrderLine]] = {}

        logger.info(
            f"MockOrderRepository initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _record(self, order_id: str) -> OrderRecord:
        header = self._headers.get(order_id)
        if header is None:
            raise OrderNotFoundError(order_id)
        return OrderRecord(
            id=order_id,
            order_number=header["order_number"],
            created_at=header["created_at"],
            items=list(self._lines.get(order_id, [])),
            total=header["total_amount"],
            status=header["status"],
            payment_status=header["payment_status"],
            payment_method=header["payment_method"],
            customer_name=header["customer_name"],
            table_number=header["table_number"],
        )

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_order_header(self, header: OrderHeaderCreate) -> str:
        self.calls.append("create_order_header")
        await self._simulate_latency()

        if self.fail_header or self._should_fail():
            logger.debug("Mock: order header write failed (simulated)")
            raise OrderPersistenceError("Simulated order header write failure", stage="header")

        if any(h["order_number"] == header.order_number for h in self._headers.values()):
            raise OrderPersistenceError(
                f"Duplicate order number {header.order_number}", stage="header"
            )

        order_id = str(uuid.uuid4())
        self._headers[order_id] = header.model_dump()
        logger.info(f"Mock: order header {header.order_number} stored as {order_id}")
        return order_id

    async def create_order_lines(self, order_id: str, lines: list[OrderLine]) -> None:
        self.calls.append("create_order_lines")
        await self._simulate_latency()

        if order_id not in self._headers:
            raise OrderPersistenceError(
                f"Order {order_id} does not exist", stage="lines", order_id=order_id
            )
        if self.fail_lines or self._should_fail():
            logger.debug(f"Mock: line items for {order_id} failed (simulated)")
            raise OrderPersistenceError(
                "Simulated order line write failure", stage="lines", order_id=order_id
            )

        self._lines[order_id] = list(lines)

    async def update_status(self, order_id: str, status: OrderStatus) -> OrderRecord:
        self.calls.append("update_status")
        header = self._headers.get(order_id)
        if header is None:
            raise OrderNotFoundError(order_id)
        ensure_fulfillment_transition(header["status"], status)
        header["status"] = OrderStatus(status)
        return self._record(order_id)

    async def update_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus,
    ) -> OrderRecord:
        self.calls.append("update_payment_status")
        header = self._headers.get(order_id)
        if header is None:
            raise OrderNotFoundError(order_id)
        ensure_payment_transition(header["payment_status"], payment_status)
        header["payment_status"] = PaymentStatus(payment_status)
        return self._record(order_id)

    async def delete_order(self, order_id: str) -> None:
        self.calls.append("delete_order")
        if self._headers.pop(order_id, None) is None:
            raise OrderNotFoundError(order_id)
        self._lines.pop(order_id, None)

    # =========================================================================
    # READS
    # =========================================================================

    async def get_order(self, order_id: str) -> OrderRecord:
        return self._record(order_id)

    async def list_orders(self) -> list[OrderRecord]:
        records = [self._record(order_id) for order_id in self._headers]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def find_orphaned_headers(self, created_before: datetime) -> list[str]:
        return [
            order_id
            for order_id, header in self._headers.items()
            if not self._lines.get(order_id) and header["created_at"] < created_before
        ]

    async def health_check(self) -> bool:
        """Mock repository is always available."""
        return True
