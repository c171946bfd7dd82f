from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest
from openpyxl import load_workbook

from storefront.core.config import get_settings
from storefront.models import OrderStatus, PaymentStatus
from storefront.schemas import OrderLine, OrderRecord
from storefront.services.invoice import InvoiceRenderer, format_currency
from storefront.services.invoice.formatting import format_long_date


@pytest.fixture()
def renderer() -> InvoiceRenderer:
    return InvoiceRenderer(get_settings())


@pytest.fixture()
def order() -> OrderRecord:
    return OrderRecord(
        id="7f1c2b9e-0000-4000-8000-000000000001",
        order_number="ORD-07032024-K3Z9QA",
        created_at=datetime(2024, 3, 7, 19, 45, tzinfo=timezone.utc),
        items=[
            OrderLine(item_id="prod-cheeseburger", name="Cheeseburger", quantity=2, unit_price=Decimal("45000")),
            OrderLine(item_id="prod-iced-tea", name="Iced Tea", quantity=1, unit_price=Decimal("15000")),
        ],
        total=Decimal("105000"),
        customer_name="Dina",
        table_number="7",
    )


@pytest.mark.parametrize(
    "amount, expected",
    [
        (Decimal("105000"), "Rp 105.000"),
        (Decimal("0"), "Rp 0"),
        (999, "Rp 999"),
        (Decimal("1234567.6"), "Rp 1.234.568"),
        (-15000, "-Rp 15.000"),
    ],
)
def test_format_currency(amount, expected) -> None:
    assert format_currency(amount) == expected


def test_long_date() -> None:
    assert format_long_date(datetime(2024, 3, 7)) == "7 March 2024"


def test_printable_view_contents(renderer, order) -> None:
    html = renderer.render_printable(order, document_url="/download")

    assert "INVOICE #ORD-07032024-K3Z9QA" in html
    assert "Dina" in html
    assert "Table 7" in html
    assert '<span id="grand-total">Rp 105.000</span>' in html
    assert "Rp 90.000" in html
    assert 'class="badge badge-pending"' in html
    assert get_settings().wifi_password in html
    assert get_settings().instagram_handle in html
    assert 'class="actions"' in html
    assert "box-shadow" in html
    assert 'href="/download"' in html


def test_print_mode_drops_chrome(renderer, order) -> None:
    html = renderer.render_printable(order, for_print=True, document_url="/download")

    assert 'class="actions"' not in html
    assert "/download" not in html
    assert "box-shadow: 0 10px" not in html
    assert '<span id="grand-total">Rp 105.000</span>' in html


def test_status_badges_follow_order(renderer, order) -> None:
    done = order.model_copy(update={"status": OrderStatus.COMPLETED, "payment_status": PaymentStatus.PAID})
    html = renderer.render_printable(done)

    assert 'class="badge badge-completed"' in html
    assert 'class="badge badge-paid"' in html


def test_customer_text_is_escaped(renderer, order) -> None:
    hostile = order.model_copy(update={"customer_name": "<script>alert(1)</script>"})
    html = renderer.render_printable(hostile)

    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html


def test_export_document_is_named_from_order_id(renderer, order, tmp_path) -> None:
    result = renderer.export_document(order, tmp_path)

    assert result.success
    assert result.filename == f"Invoice-{order.id}.xlsx"
    assert result.path == tmp_path / result.filename
    assert result.path.exists()


def test_export_document_grand_total(renderer, order, tmp_path) -> None:
    result = renderer.export_document(order, tmp_path)

    sheet = load_workbook(result.path)["Invoice"]
    rows = [tuple(cell.value for cell in row) for row in sheet.iter_rows()]
    labelled = {row[0]: row[1] for row in rows if row and row[0]}

    assert labelled["Grand Total"] == "Rp 105.000"
    assert labelled["Invoice"] == "#ORD-07032024-K3Z9QA"
    assert labelled["Billed To"] == "Dina"

    header = ("Item Description", "Qty", "Unit Price", "Total Amount")
    start = next(i for i, row in enumerate(rows) if row[:4] == header)
    items = rows[start + 1:start + 1 + len(order.items)]
    assert [(r[0], r[1], r[3]) for r in items] == [
        ("Cheeseburger", 2, 90000),
        ("Iced Tea", 1, 15000),
    ]
    assert sum(r[3] for r in items) == float(order.total)


def test_export_overwrites_previous_document(renderer, order, tmp_path) -> None:
    renderer.export_document(order, tmp_path)
    paid = order.model_copy(update={"payment_status": PaymentStatus.PAID})
    result = renderer.export_document(paid, tmp_path)

    sheet = load_workbook(result.path)["Invoice"]
    labelled = {row[0].value: row[1].value for row in sheet.iter_rows() if row[0].value}
    assert labelled["Payment Status"] == "Paid"
    assert len(list(tmp_path.glob("*.xlsx"))) == 1


def test_message_draft(renderer, order) -> None:
    message = renderer.message_draft(order)

    assert message.startswith("*INVOICE ORDER #ORD-07032024-K3Z9QA*")
    assert "Customer: Dina" in message
    assert "Meja: 7" in message
    assert "Tanggal: 07/03/2024" in message
    assert "- 2x Cheeseburger (Rp 90.000)" in message
    assert "- 1x Iced Tea (Rp 15.000)" in message
    assert "Total: Rp 105.000" in message


def test_guest_without_table(renderer, order) -> None:
    anonymous = order.model_copy(update={"customer_name": None, "table_number": None})
    message = renderer.message_draft(anonymous)

    assert "Customer: Guest" in message
    assert "Meja:" not in message


def test_share_link_targets_support_contact(renderer, order) -> None:
    url = urlparse(renderer.share_link(order))

    assert f"{url.scheme}://{url.netloc}" == get_settings().messaging_base_url
    assert url.path == f"/{get_settings().whatsapp_number}"
    assert parse_qs(url.query)["text"][0] == renderer.message_draft(order)


def test_all_outputs_agree_on_total(renderer, order, tmp_path) -> None:
    expected = format_currency(order.total)

    html = renderer.render_printable(order, for_print=True)
    message = renderer.message_draft(order)
    sheet = load_workbook(renderer.export_document(order, tmp_path).path)["Invoice"]
    exported = {row[0].value: row[1].value for row in sheet.iter_rows() if row[0].value}

    assert f'<span id="grand-total">{expected}</span>' in html
    assert f"Total: {expected}" in message
    assert exported["Grand Total"] == expected
