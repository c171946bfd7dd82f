from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from storefront.core.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    OrderPersistenceError,
)
from storefront.database import build_engine, build_session_maker, init_db
from storefront.models import OrderStatus, PaymentMethod, PaymentStatus
from storefront.schemas import OrderHeaderCreate, OrderLine
from storefront.services.catalog import CatalogStore, ProductFilter
from storefront.services.catalog.sql import SqlCatalogService, seed_catalog
from storefront.services.checkout import OrderSubmissionWorkflow
from storefront.services.orders.backoffice import purge_orphaned_headers
from storefront.services.orders.sql import SqlOrderRepository

pytestmark = pytest.mark.anyio


@pytest.fixture()
async def session_maker(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    await init_db(engine)
    try:
        yield build_session_maker(engine)
    finally:
        await engine.dispose()


def _header(number: str, created_at: datetime | None = None) -> OrderHeaderCreate:
    return OrderHeaderCreate(
        order_number=number,
        customer_name="Dina",
        table_number="7",
        total_amount=Decimal("105000"),
        payment_method=PaymentMethod.CASHIER,
        created_at=created_at or datetime.now(),
    )


LINES = [
    OrderLine(item_id="prod-cheeseburger", name="Cheeseburger", quantity=2, unit_price=Decimal("45000")),
    OrderLine(item_id="prod-iced-tea", name="Iced Tea", quantity=1, unit_price=Decimal("15000")),
]


async def test_header_then_lines_round_trip(session_maker) -> None:
    repository = SqlOrderRepository(session_maker)

    order_id = await repository.create_order_header(_header("ORD-07032024-AAAAAA"))
    await repository.create_order_lines(order_id, LINES)
    order = await repository.get_order(order_id)

    assert order.order_number == "ORD-07032024-AAAAAA"
    assert order.total == Decimal("105000")
    assert order.status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.UNPAID
    assert [(line.name, line.quantity, line.unit_price) for line in order.items] == [
        ("Cheeseburger", 2, Decimal("45000")),
        ("Iced Tea", 1, Decimal("15000")),
    ]


async def test_duplicate_order_number_is_a_persistence_error(session_maker) -> None:
    repository = SqlOrderRepository(session_maker)
    await repository.create_order_header(_header("ORD-07032024-AAAAAA"))

    with pytest.raises(OrderPersistenceError) as excinfo:
        await repository.create_order_header(_header("ORD-07032024-AAAAAA"))
    assert excinfo.value.stage == "header"


async def test_lines_for_missing_header_fail(session_maker) -> None:
    repository = SqlOrderRepository(session_maker)

    with pytest.raises(OrderPersistenceError) as excinfo:
        await repository.create_order_lines("missing", LINES)
    assert excinfo.value.stage == "lines"


async def test_status_updates_and_delete(session_maker) -> None:
    repository = SqlOrderRepository(session_maker)
    order_id = await repository.create_order_header(_header("ORD-07032024-AAAAAA"))
    await repository.create_order_lines(order_id, LINES)

    order = await repository.update_status(order_id, OrderStatus.COOKING)
    assert order.status == OrderStatus.COOKING
    with pytest.raises(InvalidTransitionError):
        await repository.update_status(order_id, OrderStatus.PENDING)

    order = await repository.update_payment_status(order_id, PaymentStatus.PAID)
    assert order.payment_status == PaymentStatus.PAID

    await repository.delete_order(order_id)
    with pytest.raises(OrderNotFoundError):
        await repository.get_order(order_id)
    with pytest.raises(OrderNotFoundError):
        await repository.delete_order(order_id)


async def test_orphan_reconciliation(session_maker) -> None:
    repository = SqlOrderRepository(session_maker)
    now = datetime.now()
    orphan = await repository.create_order_header(_header("ORD-07032024-AAAAAA", now - timedelta(hours=1)))
    complete = await repository.create_order_header(_header("ORD-07032024-BBBBBB", now - timedelta(hours=1)))
    await repository.create_order_lines(complete, LINES)
    recent = await repository.create_order_header(_header("ORD-07032024-CCCCCC", now))

    purged = await purge_orphaned_headers(repository, grace_minutes=15, now=now)

    assert purged == [orphan]
    assert {o.id for o in await repository.list_orders()} == {complete, recent}


async def test_list_orders_newest_first(session_maker) -> None:
    repository = SqlOrderRepository(session_maker)
    now = datetime.now()
    for minutes, number in [(30, "ORD-07032024-AAAAAA"), (10, "ORD-07032024-BBBBBB"), (20, "ORD-07032024-CCCCCC")]:
        order_id = await repository.create_order_header(_header(number, now - timedelta(minutes=minutes)))
        await repository.create_order_lines(order_id, LINES)

    numbers = [o.order_number for o in await repository.list_orders()]

    assert numbers == ["ORD-07032024-BBBBBB", "ORD-07032024-CCCCCC", "ORD-07032024-AAAAAA"]


async def test_checkout_against_sql(session_maker, session, cheeseburger, iced_tea) -> None:
    workflow = OrderSubmissionWorkflow(SqlOrderRepository(session_maker))
    session.cart.add_item(cheeseburger, 2)
    session.cart.add_item(iced_tea, 1)

    result = await workflow.submit(session, "Dina", "7")

    assert result.success
    stored = await workflow.repository.get_order(result.order.id)
    assert stored.total == Decimal("105000")
    assert stored.item_count == 3


async def test_seeded_sql_catalog(session_maker) -> None:
    assert await seed_catalog(session_maker) > 0
    assert await seed_catalog(session_maker) == 0

    service = SqlCatalogService(session_maker)
    store = CatalogStore(service)
    assert await store.load()

    assert [c.id for c in store.categories()] == ["cat-burgers", "cat-rice", "cat-drinks"]
    assert store.get("prod-avocado-juice") is None
    assert store.get("prod-cheeseburger").tags == ("beef", "bestseller")
    everything = await service.list_products(ProductFilter())
    assert any(not p.is_available for p in everything)
    assert await service.health_check()
