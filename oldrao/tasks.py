"""
Celery Tasks

Every task here touches the export workbook through ExcelManager, which
serializes writers with a file lock.
"""

import logging
import time
from datetime import datetime

from oldrao.celery_worker import celery_app
from oldrao.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Write (or rewrite) one order's row in the workbook.

    Queued at checkout and again after every status change, so the row
    always carries the latest status.
    """
    order_id = order_data.get('order_id', 'unknown')
    started = time.monotonic()

    result = ExcelManager.export_order(order_data)
    result['task_id'] = self.request.id
    result['processing_time_seconds'] = round(time.monotonic() - started, 3)

    if result['success']:
        logger.info(f"Order #{order_id} ({order_data.get('status')}) exported in {result['processing_time_seconds']}s")
    elif result.get('retryable'):
        logger.warning(f"Order #{order_id} export blocked: {result['message']}, retrying")
        raise self.retry(countdown=self.default_retry_delay * (self.request.retries + 1))
    else:
        logger.warning(f"Order #{order_id} export failed: {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """Worker liveness plus the state of the export workbook."""
    workbook = ExcelManager.orders_file()
    return {
        'status': 'healthy',
        'worker': 'celery',
        'workbook': str(workbook),
        'workbook_exists': workbook.exists(),
        'exported_orders': len(ExcelManager.get_all_orders()),
        'timestamp': datetime.now().isoformat(),
    }


@celery_app.task
def clear_excel_file() -> dict:
    """Delete the workbook (before a fresh simulation run)."""
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Export workbook cleared' if success else 'Failed to clear export workbook',
        'timestamp': datetime.now().isoformat(),
    }
