"""
Celery Tasks
Background tasks for the order ledger and orphaned-header cleanup.
"""

import asyncio
import logging
import time
from datetime import datetime

from storefront.celery_worker import celery_app
from storefront.core.config import get_settings
from storefront.schemas import OrderRecord
from storefront.services.checkout import SideEffectResult
from storefront.services.ledger import OrderLedger, ledger_row
from storefront.services.orders.backoffice import purge_orphaned_headers

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_ledger(self, order_data: dict) -> dict:
    """
    Append a placed order to the Excel ledger.

    Args:
        order_data: Output of ledger_row()

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_number = order_data.get('order_number', 'unknown')

    logger.info(f"📋 Task {task_id}: Processing order {order_number}")
    start_time = time.time()

    try:
        result = OrderLedger().export_order(order_data)

        elapsed = round(time.time() - start_time, 3)
        result['task_id'] = task_id
        result['processing_time_seconds'] = elapsed

        if result['success']:
            logger.info(f"✅ Task {task_id}: Order {order_number} completed in {elapsed}s")
        else:
            logger.warning(f"⚠️ Task {task_id}: Order {order_number} failed - {result['message']}")

        return result

    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"❌ Task {task_id}: Order {order_number} error after {elapsed}s - {e}")

        # Celery will auto-retry based on configuration
        raise


async def _reconcile(grace_minutes: int) -> list[str]:
    settings = get_settings()

    if not settings.use_database:
        from storefront.services.orders import get_order_repository
        return await purge_orphaned_headers(get_order_repository(), grace_minutes)

    # Each run owns its event loop, so it cannot share the API's pool
    from storefront.database import build_engine, build_session_maker
    from storefront.services.orders.sql import SqlOrderRepository

    engine = build_engine(settings.database_url)
    try:
        repository = SqlOrderRepository(build_session_maker(engine))
        return await purge_orphaned_headers(repository, grace_minutes)
    finally:
        await engine.dispose()


@celery_app.task
def reconcile_orphaned_orders(grace_minutes: int = None) -> dict:
    """
    Delete order headers whose line items were never written.
    """
    grace = grace_minutes if grace_minutes is not None else get_settings().orphan_grace_minutes
    purged = asyncio.run(_reconcile(grace))
    if purged:
        logger.warning(f"Reconciliation purged {len(purged)} orphaned order header(s)")
    return {
        'purged': purged,
        'count': len(purged),
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def clear_ledger() -> dict:
    """
    Clear the ledger file (for testing/reset purposes).
    """
    success = OrderLedger().clear_all()
    return {
        'success': success,
        'message': 'Ledger cleared' if success else 'Failed to clear ledger',
        'timestamp': datetime.now().isoformat()
    }


def ledger_export(order: OrderRecord) -> SideEffectResult:
    """Post-commit hook: hand the order to the ledger worker."""
    export_order_to_ledger.delay(ledger_row(order))
    return SideEffectResult(name="ledger_export", success=True)
