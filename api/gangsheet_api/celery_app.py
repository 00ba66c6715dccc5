"""Celery client the API uses to dispatch gangsheet generation."""

from celery import Celery

from gangsheet_api.config import settings

# Client only; tasks run in the gangsheet worker
celery_app = Celery(
    "gangsheet_api",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
)
