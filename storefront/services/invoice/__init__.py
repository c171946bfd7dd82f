"""
Invoice package: printable view, exportable workbook and shareable message.
"""

from storefront.services.invoice.formatting import format_currency
from storefront.services.invoice.launcher import (
    BrowserLauncher,
    DeepLinkLauncher,
    LaunchError,
    RecordingLauncher,
    get_launcher,
)
from storefront.services.invoice.messages import (
    build_checkout_message,
    build_deep_link,
    build_invoice_message,
)
from storefront.services.invoice.renderer import BusinessProfile, ExportResult, InvoiceRenderer

__all__ = [
    "format_currency",
    "BrowserLauncher",
    "DeepLinkLauncher",
    "LaunchError",
    "RecordingLauncher",
    "get_launcher",
    "build_checkout_message",
    "build_deep_link",
    "build_invoice_message",
    "BusinessProfile",
    "ExportResult",
    "InvoiceRenderer",
]
