"""
Excel File Manager with Concurrency Control

Process-safe export of orders to a workbook the kitchen office can open.
One row per order: exporting an order again (e.g. after a status change)
replaces its row instead of appending a duplicate.

Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from oldrao.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """File-locked Excel export of orders."""

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "customer_name",
        "phone",
        "address",
        "items",
        "total",
        "payment",
        "order_status",
        "user_id",
        "exported_at",
    ]

    @staticmethod
    def _data_dir() -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def orders_file(cls) -> Path:
        return cls._data_dir() / get_settings().excel_filename

    @classmethod
    def _lock_file(cls) -> Path:
        return cls.orders_file().with_name(cls.orders_file().name + ".lock")

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        data_dir = cls._data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            # An unreadable workbook must fail the export, not be replaced
            return pd.read_excel(file_path, engine="openpyxl")
        return pd.DataFrame(columns=columns)

    @staticmethod
    def _format_items(items: Any) -> str:
        if isinstance(items, list):
            return ", ".join(f"{i.get('qty', 1)} x {i.get('name')}" for i in items)
        return str(items or "")

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """Write or refresh one order's row with file locking."""
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        lock_timeout = get_settings().excel_lock_timeout
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls._lock_file()), timeout=lock_timeout)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_id}")

                orders_file = cls.orders_file()
                df = cls._load_or_create_df(orders_file, cls.ORDER_COLUMNS)

                export_time = datetime.now().isoformat()
                new_row = {
                    "order_id": order_id,
                    "date_time": order_data.get("created_at", export_time),
                    "customer_name": order_data.get("name"),
                    "phone": order_data.get("phone"),
                    "address": order_data.get("address"),
                    "items": cls._format_items(order_data.get("items")),
                    "total": order_data.get("total"),
                    "payment": order_data.get("payment"),
                    "order_status": order_data.get("status"),
                    "user_id": order_data.get("user_id"),
                    "exported_at": export_time,
                }

                if len(df) and "order_id" in df.columns:
                    df = df[df["order_id"] != order_id]
                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(orders_file), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            result["retryable"] = True
            logger.error(f"Lock timeout for Order #{order_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all exported orders."""
        orders_file = cls.orders_file()
        if not orders_file.exists():
            return []

        try:
            df = pd.read_excel(orders_file, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading orders: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the workbook and its lock file."""
        try:
            for f in [cls.orders_file(), cls._lock_file()]:
                if f.exists():
                    f.unlink()
            logger.info("Excel export cleared")
            return True
        except Exception as e:
            logger.error(f"Error clearing files: {e}")
            return False
