"""
Celery Worker Configuration

Redis-backed Celery app for work that must not hold up a request, which
today means the Excel export of orders.

Run with: celery -A oldrao.celery_worker worker -Q exports --loglevel=info
"""

from celery import Celery

from oldrao.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'oldrao',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['oldrao.tasks'],
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Exports all write the same workbook
    task_routes={'oldrao.tasks.*': {'queue': 'exports'}},
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # A stuck workbook lock should not pin a worker forever
    task_time_limit=settings.excel_lock_timeout * 4,
    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
