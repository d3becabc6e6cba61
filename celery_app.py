"""Celery worker and beat configuration for the OrderDesk periodic sweeps.

All three jobs are idempotent sweeps, so a lost or duplicated run is
corrected by the next tick.  Start with::

    celery -A celery_app worker -Q order-lifecycle,maintenance
    celery -A celery_app beat
"""

from celery import Celery
from celery.schedules import crontab

from src.config import settings

celery = Celery("orderdesk")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={
        "src.modules.order.tasks.*": {"queue": "order-lifecycle"},
        "src.modules.chat.tasks.*": {"queue": "maintenance"},
        "src.modules.files.tasks.*": {"queue": "maintenance"},
    },
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Sweep results are only stats dicts; keep them briefly
    result_expires=3600,
    task_time_limit=300,
    beat_schedule={
        "order-auto-cancel-stale": {
            "task": "src.modules.order.tasks.auto_cancel_stale_orders",
            "schedule": settings.auto_cancel_poll_seconds,
            # A tick that misses its slot is dropped, not queued up
            "options": {"expires": settings.auto_cancel_poll_seconds},
        },
        "chat-cleanup-daily": {
            "task": "src.modules.chat.tasks.cleanup_old_chats",
            "schedule": crontab(hour=3, minute=0),
        },
        "files-cleanup-unlinked-hourly": {
            "task": "src.modules.files.tasks.cleanup_unlinked_files",
            "schedule": crontab(minute=15),
        },
    },
)

celery.autodiscover_tasks(
    ["src.modules.order", "src.modules.chat", "src.modules.files"]
)
