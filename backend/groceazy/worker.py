"""
Celery application for background email delivery.

Run with: celery -A groceazy.worker worker --loglevel=INFO
"""

from celery import Celery, signals

from groceazy.core.config import get_settings
from groceazy.core.logging import configure_logging

settings = get_settings()

celery_app = Celery(
    "groceazy",
    broker=settings.redis_url,
    include=["groceazy.services.notifications.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    task_ignore_result=True,
    task_acks_late=True,
    worker_prefetch_multiplier=4,
    timezone="UTC",
    enable_utc=True,
)


@signals.setup_logging.connect
def setup_worker_logging(**kwargs) -> None:
    configure_logging()
