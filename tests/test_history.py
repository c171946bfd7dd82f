from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from storefront.schemas import OrderLine, OrderRecord
from storefront.services.history import HISTORY_KEY, LocalOrderHistory
from storefront.services.session import SessionRegistry
from storefront.services.storage import JsonFileStorage, MemoryStorage

from conftest import make_item


def _order(number: str, order_id: str = "id-1") -> OrderRecord:
    return OrderRecord(
        id=order_id,
        order_number=number,
        created_at=datetime(2024, 3, 7, 12, 0, tzinfo=timezone.utc),
        items=[OrderLine(item_id="prod-1", name="Cheeseburger", quantity=2, unit_price=Decimal("45000"))],
        total=Decimal("90000"),
        customer_name="Dina",
        table_number="7",
    )


def test_empty_storage_reads_as_empty_history() -> None:
    history = LocalOrderHistory(MemoryStorage())

    assert history.list() == []
    assert history.load_failed is False
    assert history.find_by_order_number("ORD-07032024-AAAAAA") is None


def test_record_prepends_most_recent_first() -> None:
    history = LocalOrderHistory(MemoryStorage())
    history.record(_order("ORD-07032024-AAAAAA", "id-1"))
    history.record(_order("ORD-07032024-BBBBBB", "id-2"))

    assert [o.order_number for o in history.list()] == [
        "ORD-07032024-BBBBBB",
        "ORD-07032024-AAAAAA",
    ]
    assert history.find_by_id("id-1").order_number == "ORD-07032024-AAAAAA"


def test_repeated_order_number_is_not_merged() -> None:
    history = LocalOrderHistory(MemoryStorage())
    history.record(_order("ORD-07032024-AAAAAA", "id-1"))
    history.record(_order("ORD-07032024-AAAAAA", "id-2"))

    assert len(history.list()) == 2
    assert history.find_by_order_number("ORD-07032024-AAAAAA").id == "id-2"


def test_corrupted_storage_reads_as_empty_and_flags_failure() -> None:
    history = LocalOrderHistory(MemoryStorage({HISTORY_KEY: "{not json"}))

    assert history.list() == []
    assert history.load_failed is True


def test_wrong_shape_reads_as_empty() -> None:
    history = LocalOrderHistory(MemoryStorage({HISTORY_KEY: '[{"id": 1}]'}))

    assert list(history) == []
    assert history.load_failed is True


def test_recording_over_corrupted_storage_starts_fresh() -> None:
    storage = MemoryStorage({HISTORY_KEY: "garbage"})
    history = LocalOrderHistory(storage)

    history.record(_order("ORD-07032024-AAAAAA"))

    assert [o.order_number for o in history.list()] == ["ORD-07032024-AAAAAA"]
    assert history.load_failed is False


def test_history_survives_in_json_file(tmp_path) -> None:
    path = tmp_path / "device.json"
    LocalOrderHistory(JsonFileStorage(path)).record(_order("ORD-07032024-AAAAAA"))

    reopened = LocalOrderHistory(JsonFileStorage(path))
    order = reopened.list()[0]

    assert order.total == Decimal("90000")
    assert order.items[0].line_total == Decimal("90000")


def test_corrupted_json_file_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "device.json"
    path.write_text("not json at all", encoding="utf-8")

    history = LocalOrderHistory(JsonFileStorage(path))

    assert history.list() == []
    assert history.load_failed is True


def test_session_registry_persists_remembered_details(tmp_path) -> None:
    registry = SessionRegistry(tmp_path)
    session_id = registry.new_session_id()
    registry.get(session_id).lock_table("9")

    restarted = SessionRegistry(tmp_path).get(session_id)

    assert restarted.table_number == "9"
    assert restarted.table_locked
    assert restarted.cart.is_empty


def test_session_registry_rejects_unsafe_ids(tmp_path) -> None:
    registry = SessionRegistry(tmp_path)

    for bad in ["../etc", "a/b", ""]:
        try:
            registry.get(bad)
        except ValueError:
            continue
        raise AssertionError(f"{bad!r} was accepted")


def test_session_registry_drops_least_recently_used(tmp_path) -> None:
    registry = SessionRegistry(tmp_path, max_sessions=3)
    ids = [registry.new_session_id() for _ in range(5)]
    first = registry.get(ids[0])
    first.lock_table("4")
    first.cart.add_item(make_item("prod-iced-tea", "Iced Tea", 15000), 1)
    second = registry.get(ids[1])

    for session_id in ids[2:]:
        registry.get(session_id)
        registry.get(ids[1])

    assert len(registry) == 3
    assert registry.get(ids[1]) is second
    reloaded = registry.get(ids[0])
    assert reloaded is not first
    assert reloaded.table_number == "4"
    assert reloaded.cart.is_empty


def test_session_registry_keeps_sessions_mid_checkout(tmp_path) -> None:
    registry = SessionRegistry(tmp_path, max_sessions=2)
    busy_id = registry.new_session_id()
    busy = registry.get(busy_id)
    busy.submitting = True

    for _ in range(5):
        registry.get(registry.new_session_id())

    assert registry.get(busy_id) is busy
    assert len(registry) == 2
