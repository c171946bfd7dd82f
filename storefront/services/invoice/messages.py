"""
Messaging drafts and deep links.

Plain-text order summaries sent to the staff WhatsApp contact, and the
``https://wa.me/<contact>?text=<message>`` links that open them as a
pre-filled chat.
"""

from decimal import Decimal
from typing import Callable, Iterable
from urllib.parse import quote

from storefront.schemas import OrderLine, OrderRecord
from storefront.services.invoice.formatting import format_currency, format_short_date

RULE = "-" * 28

Formatter = Callable[[Decimal], str]


def build_deep_link(base_url: str, contact: str, text: str) -> str:
    return f"{base_url.rstrip('/')}/{contact}?text={quote(text, safe='')}"


def build_checkout_message(
    customer_name: str,
    table_number: str,
    lines: Iterable[OrderLine],
    total: Decimal,
    money: Formatter = format_currency,
) -> str:
    """Message sent when the customer picks messaging checkout."""
    parts = [
        "*PESANAN BARU*",
        f"Nama: {customer_name}",
        f"Meja: {table_number}",
        "Metode: WhatsApp Checkout",
        RULE,
        "",
    ]
    parts.extend(f"{line.quantity}x {line.name} - {money(line.line_total)}" for line in lines)
    parts.extend([
        "",
        RULE,
        f"*Total: {money(total)}*",
        "",
        "Mohon segera diproses ya Kaka, Terima Kasih! 🙏",
    ])
    return "\n".join(parts)


def build_invoice_message(
    order: OrderRecord,
    business_name: str,
    money: Formatter = format_currency,
) -> str:
    """Shareable itemized summary of a placed order."""
    parts = [
        f"*INVOICE ORDER #{order.order_number}*",
        f"Customer: {order.customer_name or 'Guest'}",
    ]
    if order.table_number:
        parts.append(f"Meja: {order.table_number}")
    parts.extend([
        f"Tanggal: {format_short_date(order.created_at)}",
        f"Total: {money(order.total)}",
        "",
        "Detail Pesanan:",
    ])
    parts.extend(
        f"- {line.quantity}x {line.name} ({money(line.line_total)})" for line in order.items
    )
    parts.extend([
        "",
        f"Terima kasih telah memesan di {business_name}! 🙏",
    ])
    return "\n".join(parts)
