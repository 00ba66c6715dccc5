"""Celery tasks."""

from gangsheet_worker.celery_app import celery_app

# Import all tasks to register them with Celery
from gangsheet_worker.tasks.generate_gangsheet import generate_gangsheet  # noqa: F401


@celery_app.task(name="gangsheet_worker.tasks.health_check")
def health_check() -> dict:
    """Health check task."""
    return {"status": "ok", "worker": "ready"}


__all__ = ["generate_gangsheet", "health_check"]
