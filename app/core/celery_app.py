"""
Celery application for order notification emails.
Run a worker with: celery -A app.core.celery_app worker -Q notifications
"""
from celery import Celery
from celery.signals import setup_logging

from app.core.config import settings
from app.core.logging import configure_logging

celery_app = Celery(
    "rank_booking",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.workers.tasks.notify_order"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    # SMTP fallback can take two connect timeouts
    task_time_limit=300,
    result_expires=86400,
    task_routes={"app.workers.tasks.notify_order.*": {"queue": "notifications"}},
)


@setup_logging.connect
def _worker_logging(**kwargs) -> None:
    configure_logging()
