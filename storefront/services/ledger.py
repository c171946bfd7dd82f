"""
Order Ledger with Concurrency Control

Appends every placed order to a back-office Excel workbook. Writes are
serialized across processes (API workers and Celery workers) with a file
lock next to the workbook.

Author: Storefront Team
Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from storefront.core.config import get_settings
from storefront.schemas import OrderRecord

logger = logging.getLogger(__name__)


def ledger_row(order: OrderRecord) -> dict[str, Any]:
    """JSON-safe ledger payload for an order, suitable as a task argument."""
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "created_at": order.created_at.isoformat(),
        "customer_name": order.customer_name,
        "table_number": order.table_number,
        "items": order.items_summary(),
        "item_count": order.item_count,
        "total_amount": float(order.total),
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
        "order_status": order.status.value,
    }


class OrderLedger:
    """Process-safe Excel ledger of placed orders."""

    COLUMNS = [
        "order_id",
        "order_number",
        "date_time",
        "customer_name",
        "table_number",
        "items",
        "item_count",
        "total_amount",
        "payment_method",
        "payment_status",
        "order_status",
        "exported_at",
    ]

    def __init__(self, path: Optional[Path] = None, lock_timeout: Optional[int] = None):
        settings = get_settings()
        self.path = Path(path) if path else settings.ledger_path
        self.lock_timeout = lock_timeout or settings.file_lock_timeout
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")

    def _ensure_data_dir(self) -> None:
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.path.parent}")

    def _load_or_create_df(self) -> pd.DataFrame:
        if self.path.exists():
            try:
                return pd.read_excel(self.path, engine="openpyxl", dtype={"order_number": str})
            except Exception as e:
                logger.warning(f"Error reading {self.path}: {e}")
                return pd.DataFrame(columns=self.COLUMNS)
        return pd.DataFrame(columns=self.COLUMNS)

    def export_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append one order row under the file lock."""
        self._ensure_data_dir()

        order_number = order_data.get("order_number", "unknown")
        result = {
            "success": False,
            "message": "",
            "order_number": order_number,
            "exported_at": None,
        }

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                logger.debug(f"Lock acquired for order {order_number}")

                df = self._load_or_create_df()

                export_time = datetime.now().isoformat()
                new_row = {
                    "order_id": order_data.get("order_id"),
                    "order_number": order_number,
                    "date_time": order_data.get("created_at", export_time),
                    "customer_name": order_data.get("customer_name"),
                    "table_number": order_data.get("table_number"),
                    "items": order_data.get("items"),
                    "item_count": order_data.get("item_count", 0),
                    "total_amount": order_data.get("total_amount"),
                    "payment_method": order_data.get("payment_method"),
                    "payment_status": order_data.get("payment_status"),
                    "order_status": order_data.get("order_status"),
                    "exported_at": export_time,
                }

                frame = pd.DataFrame([new_row], columns=self.COLUMNS)
                df = frame if df.empty else pd.concat([df, frame], ignore_index=True)
                df.to_excel(str(self.path), index=False, engine="openpyxl")

                logger.info(f"Order {order_number} written to ledger")

                result["success"] = True
                result["message"] = f"Order {order_number} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for order {order_number}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for order {order_number}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting order {order_number}")

        return result

    def get_all_orders(self) -> list[dict[str, Any]]:
        """Every ledger row, oldest first."""
        if not self.path.exists():
            return []

        try:
            df = pd.read_excel(self.path, engine="openpyxl", dtype={"order_number": str})
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading ledger: {e}")
            return []

    def clear_all(self) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in (self.path, self.lock_path):
                if f.exists():
                    f.unlink()
            logger.info("Order ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing ledger: {e}")
            return False
