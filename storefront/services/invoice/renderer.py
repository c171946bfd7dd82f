"""
Invoice / Receipt Renderer

Produces the three presentations of a placed order:
    - Printable view: an HTML document (Jinja2), with a print mode that
      drops navigation and decorative styling
    - Exportable document: an Excel workbook named Invoice-<order id>.xlsx
    - Shareable message draft plus the messaging deep link that opens it

Every presentation is a pure function of the order and the static
business profile, so all three always show the same grand total.

Author: Storefront Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd
from filelock import FileLock, Timeout
from jinja2 import Environment, PackageLoader, select_autoescape

from storefront.core.config import Settings, get_settings
from storefront.models import OrderStatus, PaymentStatus
from storefront.schemas import OrderRecord
from storefront.services.invoice.formatting import (
    format_currency,
    format_long_date,
    format_time,
)
from storefront.services.invoice.messages import build_deep_link, build_invoice_message

logger = logging.getLogger(__name__)

STATUS_BADGES = {
    OrderStatus.PENDING: "badge-pending",
    OrderStatus.COOKING: "badge-cooking",
    OrderStatus.COMPLETED: "badge-completed",
    OrderStatus.CANCELLED: "badge-cancelled",
}

PAYMENT_BADGES = {
    PaymentStatus.UNPAID: "badge-unpaid",
    PaymentStatus.PAID: "badge-paid",
    PaymentStatus.REFUNDED: "badge-refunded",
}

ITEM_COLUMNS = ["Item Description", "Qty", "Unit Price", "Total Amount"]


@dataclass(frozen=True)
class BusinessProfile:
    """Static business identity printed on every invoice."""
    name: str
    tagline: str
    address: str
    city: str
    email: str
    phone: str
    wifi_password: str
    instagram_handle: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "BusinessProfile":
        return cls(
            name=settings.restaurant_name,
            tagline=settings.restaurant_tagline,
            address=settings.restaurant_address,
            city=settings.restaurant_city,
            email=settings.restaurant_email,
            phone=settings.restaurant_phone,
            wifi_password=settings.wifi_password,
            instagram_handle=settings.instagram_handle,
        )

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.tagline}".strip()


@dataclass
class ExportResult:
    """
    Result of writing the exportable invoice document.

    Attributes:
        success: Whether the workbook was written
        path: Location of the written workbook
        filename: Invoice-<order id>.xlsx
        error_message: Error description if the export failed
        error_code: Machine-readable error code
    """
    success: bool
    filename: str
    path: Optional[Path] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


class InvoiceRenderer:
    """Renders placed orders for print, export and sharing."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        profile: Optional[BusinessProfile] = None,
    ):
        settings = settings or get_settings()
        self.profile = profile or BusinessProfile.from_settings(settings)
        self.currency_symbol = settings.currency_symbol
        self.thousands_separator = settings.thousands_separator
        self.messaging_base_url = settings.messaging_base_url
        self.support_contact = settings.whatsapp_number
        self.lock_timeout = settings.file_lock_timeout

        self._env = Environment(
            loader=PackageLoader("storefront", "templates"),
            autoescape=select_autoescape(["html"]),
        )
        self._env.filters["money"] = self.money
        self._env.filters["long_date"] = format_long_date
        self._env.filters["clock"] = format_time

    def money(self, amount) -> str:
        return format_currency(amount, self.currency_symbol, self.thousands_separator)

    @staticmethod
    def totals(order: OrderRecord) -> dict[str, Decimal]:
        """Subtotal, service fee and grand total as printed on the invoice."""
        return {
            "subtotal": order.total,
            "service_fee": Decimal("0"),
            "grand_total": order.total,
        }

    @staticmethod
    def export_filename(order: OrderRecord) -> str:
        return f"Invoice-{order.id}.xlsx"

    # =========================================================================
    # PRINTABLE VIEW
    # =========================================================================

    def render_printable(
        self,
        order: OrderRecord,
        for_print: bool = False,
        document_url: Optional[str] = None,
        back_url: Optional[str] = None,
    ) -> str:
        """
        Render the invoice as an HTML document.

        Args:
            order: Placed order
            for_print: Omit the action bar, navigation and shadows
            document_url: Link behind the download action
            back_url: Link behind the back navigation
        """
        template = self._env.get_template("invoice.html")
        return template.render(
            order=order,
            profile=self.profile,
            for_print=for_print,
            document_url=document_url,
            back_url=back_url,
            share_url=None if for_print else self.share_link(order),
            status_badge=STATUS_BADGES.get(order.status, "badge-pending"),
            payment_badge=PAYMENT_BADGES.get(order.payment_status, "badge-unpaid"),
            **self.totals(order),
        )

    # =========================================================================
    # EXPORTABLE DOCUMENT
    # =========================================================================

    def _document_frames(self, order: OrderRecord) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        profile = self.profile
        header = pd.DataFrame([
            (profile.display_name, ""),
            (profile.address, ""),
            (profile.city, ""),
            (f"{profile.email} | {profile.phone}", ""),
            ("", ""),
            ("Invoice", f"#{order.order_number}"),
            ("Order ID", order.id),
            ("Date", format_long_date(order.created_at)),
            ("Time", format_time(order.created_at)),
            ("Status", order.status.value),
            ("Billed To", order.customer_name or "Guest"),
            ("Table", order.table_number or "-"),
            ("Payment Status", order.payment_status.value),
            ("Payment Method", order.payment_method.value),
        ])
        items = pd.DataFrame(
            [
                {
                    "Item Description": line.name,
                    "Qty": line.quantity,
                    "Unit Price": float(line.unit_price),
                    "Total Amount": float(line.line_total),
                }
                for line in order.items
            ],
            columns=ITEM_COLUMNS,
        )
        totals = self.totals(order)
        summary = pd.DataFrame([
            ("Subtotal", self.money(totals["subtotal"])),
            ("Service Fee", self.money(totals["service_fee"])),
            ("Grand Total", self.money(totals["grand_total"])),
            ("", ""),
            (f"Wi-Fi: {profile.wifi_password}", f"Instagram: {profile.instagram_handle}"),
            ("Original Digital Invoice", ""),
        ])
        return header, items, summary

    def export_document(self, order: OrderRecord, directory: Path) -> ExportResult:
        """
        Write the invoice workbook into directory.

        Re-exporting an order overwrites its previous workbook.
        """
        directory = Path(directory)
        filename = self.export_filename(order)
        path = directory / filename
        lock_path = directory / f"{filename}.lock"

        try:
            directory.mkdir(parents=True, exist_ok=True)
            header, items, summary = self._document_frames(order)

            with FileLock(str(lock_path), timeout=self.lock_timeout):
                with pd.ExcelWriter(path, engine="openpyxl") as writer:
                    header.to_excel(writer, sheet_name="Invoice", index=False, header=False)
                    items_row = len(header) + 1
                    items.to_excel(writer, sheet_name="Invoice", index=False, startrow=items_row)
                    summary.to_excel(
                        writer,
                        sheet_name="Invoice",
                        index=False,
                        header=False,
                        startrow=items_row + len(items) + 2,
                    )

            logger.info(f"Invoice {order.order_number} exported to {path}")
            return ExportResult(success=True, filename=filename, path=path)

        except Timeout:
            logger.error(f"Lock timeout exporting invoice {order.order_number}")
            return ExportResult(
                success=False,
                filename=filename,
                error_message=f"Lock timeout ({self.lock_timeout}s)",
                error_code="lock_timeout",
            )
        except Exception as e:
            logger.exception(f"Error exporting invoice {order.order_number}")
            return ExportResult(
                success=False,
                filename=filename,
                error_message=str(e),
                error_code="export_failed",
            )

    # =========================================================================
    # SHAREABLE MESSAGE
    # =========================================================================

    def message_draft(self, order: OrderRecord) -> str:
        return build_invoice_message(order, self.profile.display_name, money=self.money)

    def share_link(self, order: OrderRecord) -> str:
        return build_deep_link(
            self.messaging_base_url,
            self.support_contact,
            self.message_draft(order),
        )
