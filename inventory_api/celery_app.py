"""Celery application."""

from celery import Celery

from inventory_api.config import settings

celery_app = Celery(
    "inventory_api",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["inventory_api.tasks.bulk_upload"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Image batches are long-running; hand out one at a time
    worker_prefetch_multiplier=1,
)
