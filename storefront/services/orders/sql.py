"""
SQL Order Repository Implementation

Writes order headers and line items through SQLAlchemy. Each public call
runs in its own session and transaction, so a header commit is durable
even when the following line-item call fails.

Author: Storefront Team
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import OrderNotFoundError, OrderPersistenceError
from storefront.models import Order, OrderItem, OrderStatus, PaymentStatus
from storefront.schemas import OrderHeaderCreate, OrderLine, OrderRecord
from storefront.services.orders.base import BaseOrderRepository
from storefront.services.orders.status import (
    ensure_fulfillment_transition,
    ensure_payment_transition,
)

logger = logging.getLogger(__name__)


class SqlOrderRepository(BaseOrderRepository):
    """Order repository backed by the orders and order_items tables."""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_maker is None:
            from storefront.database import async_session_maker
            session_maker = async_session_maker
        self._session_maker = session_maker
        logger.info("SqlOrderRepository initialized")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def _load(self, session: AsyncSession, order_id: str) -> Order:
        result = await session.execute(
            select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_order_header(self, header: OrderHeaderCreate) -> str:
        order = Order(
            order_number=header.order_number,
            customer_name=header.customer_name,
            table_number=header.table_number,
            total_amount=header.total_amount,
            payment_method=header.payment_method,
            status=header.status,
            payment_status=header.payment_status,
            created_at=header.created_at,
        )
        try:
            async with self._session_maker() as session:
                session.add(order)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error creating order header {header.order_number}: {e}")
            raise OrderPersistenceError(str(e), stage="header") from e

        logger.info(f"Order header {order.order_number} created ({order.id})")
        return order.id

    async def create_order_lines(self, order_id: str, lines: list[OrderLine]) -> None:
        try:
            async with self._session_maker() as session:
                header_exists = await session.scalar(
                    select(exists().where(Order.id == order_id))
                )
                if not header_exists:
                    raise OrderPersistenceError(
                        f"Order {order_id} does not exist",
                        stage="lines",
                        order_id=order_id,
                    )
                session.add_all([
                    OrderItem(
                        order_id=order_id,
                        line_index=index,
                        product_id=line.item_id,
                        name=line.name,
                        description=line.description,
                        image_url=line.image,
                        quantity=line.quantity,
                        price_at_time=line.unit_price,
                    )
                    for index, line in enumerate(lines)
                ])
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error creating line items for order {order_id}: {e}")
            raise OrderPersistenceError(str(e), stage="lines", order_id=order_id) from e

        logger.debug(f"{len(lines)} line items stored for order {order_id}")

    async def update_status(self, order_id: str, status: OrderStatus) -> OrderRecord:
        try:
            async with self._session_maker() as session:
                order = await self._load(session, order_id)
                ensure_fulfillment_transition(order.status, status)
                order.status = OrderStatus(status)
                await session.commit()
                order = await self._load(session, order_id)
                return OrderRecord.from_row(order)
        except SQLAlchemyError as e:
            logger.error(f"Error updating status of order {order_id}: {e}")
            raise OrderPersistenceError(str(e), stage="status", order_id=order_id) from e

    async def update_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus,
    ) -> OrderRecord:
        try:
            async with self._session_maker() as session:
                order = await self._load(session, order_id)
                ensure_payment_transition(order.payment_status, payment_status)
                order.payment_status = PaymentStatus(payment_status)
                await session.commit()
                order = await self._load(session, order_id)
                return OrderRecord.from_row(order)
        except SQLAlchemyError as e:
            logger.error(f"Error updating payment status of order {order_id}: {e}")
            raise OrderPersistenceError(str(e), stage="payment", order_id=order_id) from e

    async def delete_order(self, order_id: str) -> None:
        try:
            async with self._session_maker() as session:
                await session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
                result = await session.execute(delete(Order).where(Order.id == order_id))
                if result.rowcount == 0:
                    await session.rollback()
                    raise OrderNotFoundError(order_id)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting order {order_id}: {e}")
            raise OrderPersistenceError(str(e), stage="delete", order_id=order_id) from e

        logger.info(f"Order {order_id} deleted")

    # =========================================================================
    # READS
    # =========================================================================

    async def get_order(self, order_id: str) -> OrderRecord:
        async with self._session_maker() as session:
            return OrderRecord.from_row(await self._load(session, order_id))

    async def list_orders(self) -> list[OrderRecord]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Order)
                .options(selectinload(Order.items))
                .order_by(Order.created_at.desc())
            )
            return [OrderRecord.from_row(row) for row in result.scalars().all()]

    async def find_orphaned_headers(self, created_before: datetime) -> list[str]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Order.id)
                .where(Order.created_at < created_before)
                .where(~exists().where(OrderItem.order_id == Order.id))
            )
            return list(result.scalars().all())

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.count(Order.id)))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Order repository health check failed: {e}")
            return False
