"""
Back-office order views.

Filtering, searching and statistics over the full order list, computed
in memory after a single fetch from the repository.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from storefront.models import OrderStatus
from storefront.schemas import OrderRecord
from storefront.services.orders.base import BaseOrderRepository

logger = logging.getLogger(__name__)


def filter_orders(
    orders: Iterable[OrderRecord],
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> list[OrderRecord]:
    """
    Keep orders matching a status ("all" or None for every status) and a
    case-insensitive search on order number or customer name.
    """
    status_key = (status or "all").lower()
    term = (search or "").strip().lower()

    result = []
    for order in orders:
        if status_key != "all" and order.status.value.lower() != status_key:
            continue
        if term and term not in order.order_number.lower() and term not in (order.customer_name or "").lower():
            continue
        result.append(order)
    return result


@dataclass
class OrderStats:
    """Revenue and volume figures for the dashboard."""
    total_revenue: Decimal = Decimal("0")
    total_orders: int = 0
    orders_by_status: dict[str, int] = field(default_factory=dict)
    recent_orders: list[OrderRecord] = field(default_factory=list)


def compute_order_stats(orders: list[OrderRecord], recent_limit: int = 5) -> OrderStats:
    """
    Aggregate the order list.

    Revenue sums every order's stored total, cancelled ones included.
    Orders are expected newest first so the head is the recent list.
    """
    counts = Counter(order.status.value for order in orders)
    return OrderStats(
        total_revenue=sum((order.total for order in orders), Decimal("0")),
        total_orders=len(orders),
        orders_by_status={status.value: counts.get(status.value, 0) for status in OrderStatus},
        recent_orders=list(orders[:recent_limit]),
    )


async def purge_orphaned_headers(
    repository: BaseOrderRepository,
    grace_minutes: int,
    now: Optional[datetime] = None,
) -> list[str]:
    """
    Delete order headers that never received their line items.

    Only headers older than the grace period are touched, so a checkout
    still writing its lines is left alone.
    """
    cutoff = (now or datetime.now().astimezone()) - timedelta(minutes=grace_minutes)
    orphans = await repository.find_orphaned_headers(cutoff)
    for order_id in orphans:
        await repository.delete_order(order_id)
        logger.warning(f"Purged orphaned order header {order_id}")
    return orphans
