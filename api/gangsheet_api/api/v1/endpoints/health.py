"""Health check endpoints."""

import logging

from celery.exceptions import TimeoutError as CeleryTimeoutError
from fastapi import APIRouter, HTTPException, status
from kombu.exceptions import OperationalError

from gangsheet_api.celery_app import celery_app
from gangsheet_api.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Liveness probe for Kubernetes/Docker."""
    return {"status": "ok", "service": "gangsheet-api"}


@router.get("/healthz/worker")
def worker_health():
    """Round-trip a health_check task through the broker to a gangsheet worker."""
    try:
        result = celery_app.send_task(settings.worker_health_check_task)
        reply = result.get(timeout=settings.worker_health_check_timeout)
    except (CeleryTimeoutError, OperationalError) as e:
        logger.warning(f"Worker health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No gangsheet worker answered the health check",
        )

    return {"status": "ok", "worker": reply}
