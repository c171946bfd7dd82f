from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.schemas import OrderLine, OrderRecord
from storefront.services.ledger import OrderLedger
from storefront.services.orders import reset_order_repository
from storefront.tasks import clear_ledger, health_check, ledger_export, reconcile_orphaned_orders


@pytest.fixture()
def order() -> OrderRecord:
    return OrderRecord(
        id="id-1",
        order_number="ORD-07032024-K3Z9QA",
        created_at=datetime(2024, 3, 7, 19, 45, tzinfo=timezone.utc),
        items=[OrderLine(item_id="prod-iced-tea", name="Iced Tea", quantity=2, unit_price=Decimal("15000"))],
        total=Decimal("30000"),
        customer_name="Dina",
        table_number="7",
    )


def test_ledger_hook_runs_inline_in_development(order, tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    effect = ledger_export(order)

    assert effect.success
    rows = OrderLedger().get_all_orders()
    assert [r["order_number"] for r in rows] == ["ORD-07032024-K3Z9QA"]
    assert rows[0]["items"] == "2x Iced Tea"

    assert clear_ledger()["success"]
    assert OrderLedger().get_all_orders() == []


def test_reconcile_task_on_empty_repository() -> None:
    reset_order_repository()

    result = reconcile_orphaned_orders(grace_minutes=15)

    assert result["purged"] == []
    assert result["count"] == 0


def test_worker_health_task() -> None:
    assert health_check()["status"] == "healthy"
