"""Celery application of the gangsheet worker."""

import logging

from celery import Celery
from celery.signals import after_setup_logger

from gangsheet_worker.config import settings

celery_app = Celery(
    "gangsheet_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["gangsheet_worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.worker_concurrency,
)


@after_setup_logger.connect
def configure_logging(logger, *args, **kwargs):
    """Apply the configured log level to the worker's root logger."""
    logger.setLevel(settings.log_level.upper())
    logging.getLogger("gangsheet_worker").setLevel(settings.log_level.upper())
