from __future__ import annotations

from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from storefront import main
from storefront.core.config import get_settings
from storefront.services.catalog import CatalogStore, MockCatalogService, get_catalog_service
from storefront.services.checkout import OrderSubmissionWorkflow
from storefront.services.invoice import InvoiceRenderer, RecordingLauncher
from storefront.services.orders import MockOrderRepository, get_order_repository
from storefront.services.session import SessionRegistry


@pytest.fixture()
def repository() -> MockOrderRepository:
    return MockOrderRepository()


@pytest.fixture()
def registry(tmp_path) -> SessionRegistry:
    return SessionRegistry(tmp_path / "sessions", lock_timeout=5)


@pytest.fixture()
def client(tmp_path, monkeypatch, repository, registry):
    monkeypatch.chdir(tmp_path)
    catalog = MockCatalogService()
    renderer = InvoiceRenderer(get_settings())
    workflow = OrderSubmissionWorkflow(
        repository,
        renderer=renderer,
        launcher=RecordingLauncher(),
        hooks=[],
    )

    overrides = {
        main.get_session_registry: lambda: registry,
        main.get_catalog_store: lambda: CatalogStore(catalog),
        main.get_invoice_renderer: lambda: renderer,
        main.get_checkout_workflow: lambda: workflow,
        get_catalog_service: lambda: catalog,
        get_order_repository: lambda: repository,
    }
    main.app.dependency_overrides.update(overrides)
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


def _open_session(client: TestClient, table: str | None = None) -> str:
    params = {"table": table} if table else {}
    response = client.post("/api/sessions", params=params)
    assert response.status_code == 201
    return response.json()["session_id"]


def _fill_cart(client: TestClient, session_id: str) -> None:
    client.post(f"/api/sessions/{session_id}/cart/items", json={"item_id": "prod-cheeseburger", "quantity": 2})
    client.post(f"/api/sessions/{session_id}/cart/items", json={"item_id": "prod-iced-tea"})


def _checkout(client: TestClient, session_id: str, **body) -> dict:
    payload = {"customer_name": "Dina", "table_number": "7", **body}
    response = client.post(f"/api/sessions/{session_id}/checkout", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "operational"


def test_menu_browsing(client) -> None:
    categories = client.get("/api/categories").json()
    assert [c["id"] for c in categories] == ["cat-burgers", "cat-rice", "cat-drinks"]

    page = client.get("/api/products", params={"per_page": 1}).json()
    assert page["total"] == 2
    assert page["total_pages"] == 2
    assert len(page["items"]) == 1

    found = client.get("/api/products", params={"q": "spicy"}).json()
    assert {p["id"] for p in found["items"]} == {"prod-chicken-burger", "prod-nasi-goreng"}

    assert client.get("/api/products/prod-avocado-juice").status_code == 404


def test_cart_operations(client) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)

    cart = client.get(f"/api/sessions/{session_id}/cart").json()
    assert Decimal(cart["subtotal"]) == Decimal("105000")
    assert cart["subtotal_display"] == "Rp 105.000"
    assert cart["item_count"] == 3

    cart = client.patch(f"/api/sessions/{session_id}/cart/items/prod-iced-tea", json={"quantity": 3}).json()
    assert Decimal(cart["subtotal"]) == Decimal("135000")

    cart = client.patch(f"/api/sessions/{session_id}/cart/items/prod-iced-tea", json={"quantity": 0}).json()
    assert Decimal(cart["subtotal"]) == Decimal("135000")

    cart = client.delete(f"/api/sessions/{session_id}/cart/items/prod-cheeseburger").json()
    assert [line["item"]["id"] for line in cart["lines"]] == ["prod-iced-tea"]

    cart = client.delete(f"/api/sessions/{session_id}/cart").json()
    assert cart["lines"] == []

    response = client.post(f"/api/sessions/{session_id}/cart/items", json={"item_id": "missing"})
    assert response.status_code == 404


def test_unsafe_session_id_is_rejected(client) -> None:
    assert client.get("/api/sessions/bad.id/cart").status_code == 400


def test_cart_is_frozen_while_checkout_is_in_flight(client, registry) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)
    registry.get(session_id).submitting = True

    base = f"/api/sessions/{session_id}/cart"
    assert client.post(f"{base}/items", json={"item_id": "prod-fries"}).status_code == 409
    assert client.post(f"{base}/items", json={"item_id": "prod-iced-tea"}).status_code == 409
    assert client.patch(f"{base}/items/prod-iced-tea", json={"quantity": 5}).status_code == 409
    assert client.delete(f"{base}/items/prod-iced-tea").status_code == 409
    assert client.delete(base).status_code == 409

    registry.get(session_id).submitting = False
    assert client.get(base).json()["item_count"] == 3


def test_quantity_updates_are_capped(client) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)

    response = client.patch(f"/api/sessions/{session_id}/cart/items/prod-iced-tea", json={"quantity": 100})

    assert response.status_code == 422
    assert client.get(f"/api/sessions/{session_id}/cart").json()["item_count"] == 3


def test_checkout_places_order_and_records_history(client, repository) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)

    body = _checkout(client, session_id)

    order = body["order"]
    assert body["success"]
    assert Decimal(order["total"]) == Decimal("105000")
    assert order["order_number"].startswith("ORD-")
    assert body["invoice_url"] == f"/api/sessions/{session_id}/orders/{order['order_number']}/invoice"
    assert repository.calls == ["create_order_header", "create_order_lines"]

    assert client.get(f"/api/sessions/{session_id}/cart").json()["lines"] == []
    history = client.get(f"/api/sessions/{session_id}/orders").json()
    assert history["total"] == 1
    assert history["orders"][0]["order_number"] == order["order_number"]

    session = client.get(f"/api/sessions/{session_id}").json()
    assert session["customer_name"] == "Dina"
    assert session["table_number"] == "7"


def test_checkout_rejects_blank_name(client, repository) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)

    response = client.post(
        f"/api/sessions/{session_id}/checkout",
        json={"customer_name": "   ", "table_number": "7"},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "validation_error"
    assert repository.calls == []
    assert client.get(f"/api/sessions/{session_id}/cart").json()["item_count"] == 3


def test_checkout_with_empty_cart(client) -> None:
    session_id = _open_session(client)

    response = client.post(
        f"/api/sessions/{session_id}/checkout",
        json={"customer_name": "Dina", "table_number": "7"},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "empty_cart"


def test_checkout_storage_failure_keeps_cart(client, repository) -> None:
    repository.fail_header = True
    session_id = _open_session(client)
    _fill_cart(client, session_id)

    response = client.post(
        f"/api/sessions/{session_id}/checkout",
        json={"customer_name": "Dina", "table_number": "7"},
    )

    assert response.status_code == 503
    assert response.json()["error_code"] == "persistence_error"
    assert client.get(f"/api/sessions/{session_id}/cart").json()["item_count"] == 3


def test_qr_table_wins_over_form(client) -> None:
    session_id = _open_session(client, table="12")
    assert client.get(f"/api/sessions/{session_id}").json()["table_locked"]
    _fill_cart(client, session_id)

    body = _checkout(client, session_id, table_number="3")

    assert body["order"]["table_number"] == "12"


def test_messaging_checkout_returns_deep_link(client) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)

    body = _checkout(client, session_id, payment_method="wa_checkout")

    effect = next(e for e in body["side_effects"] if e["name"] == "messaging_checkout")
    assert effect["success"]
    text = parse_qs(urlparse(effect["url"]).query)["text"][0]
    assert text.startswith("*PESANAN BARU*")
    assert "2x Cheeseburger - Rp 90.000" in text
    assert "*Total: Rp 105.000*" in text


def test_invoice_views(client) -> None:
    session_id = _open_session(client)
    _fill_cart(client, session_id)
    number = _checkout(client, session_id)["order"]["order_number"]
    base = f"/api/sessions/{session_id}/orders/{number}/invoice"

    page = client.get(base)
    assert page.status_code == 200
    assert f"INVOICE #{number}" in page.text
    assert 'class="actions"' in page.text

    printable = client.get(base, params={"print": "true"})
    assert 'class="actions"' not in printable.text
    assert '<span id="grand-total">Rp 105.000</span>' in printable.text

    document = client.get(f"{base}/document")
    assert document.status_code == 200
    assert document.headers["content-type"] == main.XLSX_MEDIA_TYPE
    assert document.content[:2] == b"PK"

    share = client.get(f"{base}/share").json()
    assert share["message"].startswith(f"*INVOICE ORDER #{number}*")
    assert parse_qs(urlparse(share["url"]).query)["text"][0] == share["message"]

    assert client.get(f"/api/sessions/{session_id}/orders/ORD-00000000-XXXXXX/invoice").status_code == 404


def test_back_office_order_management(client) -> None:
    placed = []
    for name in ["Dina", "Budi", "Sari"]:
        session_id = _open_session(client)
        _fill_cart(client, session_id)
        placed.append(_checkout(client, session_id, customer_name=name)["order"])

    listing = client.get("/api/orders").json()
    assert listing["total"] == 3

    first = placed[0]["id"]
    assert client.patch(f"/api/orders/{first}/status", json={"status": "Cooking"}).json()["status"] == "Cooking"
    response = client.patch(f"/api/orders/{first}/status", json={"status": "Pending"})
    assert response.status_code == 409
    paid = client.patch(f"/api/orders/{first}/payment-status", json={"payment_status": "Paid"}).json()
    assert paid["payment_status"] == "Paid"

    cooking = client.get("/api/orders", params={"status": "Cooking"}).json()
    assert [o["id"] for o in cooking["orders"]] == [first]
    searched = client.get("/api/orders", params={"q": "budi"}).json()
    assert [o["customer_name"] for o in searched["orders"]] == ["Budi"]

    assert "INVOICE #" in client.get(f"/api/orders/{first}/invoice").text

    assert client.delete(f"/api/orders/{placed[2]['id']}").status_code == 204
    assert client.delete(f"/api/orders/{placed[2]['id']}").status_code == 404
    assert client.get(f"/api/orders/{placed[2]['id']}").status_code == 404


def test_dashboard_data(client) -> None:
    for _ in range(2):
        session_id = _open_session(client)
        _fill_cart(client, session_id)
        _checkout(client, session_id)

    data = client.get("/api/dashboard-data").json()

    assert Decimal(data["total_revenue"]) == Decimal("210000")
    assert data["total_revenue_display"] == "Rp 210.000"
    assert data["total_orders"] == 2
    assert data["orders_by_status"]["Pending"] == 2
    assert data["categories_count"] == 3
    assert data["unavailable_count"] == 1
    assert data["recent_orders"][0]["items"] == "2x Cheeseburger, 1x Iced Tea"
