"""Gangsheet generation task."""

import asyncio
import logging

from gangsheet_api.database import SessionLocal
from gangsheet_api.storage.base import BaseStorageDriver
from gangsheet_worker.celery_app import celery_app
from gangsheet_worker.config import settings
from gangsheet_worker.services.design_source import HttpDesignSource
from gangsheet_worker.services.orchestrator import GangsheetOrchestrator

logger = logging.getLogger(__name__)


def http_design_source(tenant_id: int, storage_driver: BaseStorageDriver) -> HttpDesignSource:
    return HttpDesignSource(
        base_url=settings.design_service_url,
        storage_driver=storage_driver,
        token=settings.design_service_token,
        timeout=settings.design_service_timeout,
        tenant_id=tenant_id,
    )


def build_orchestrator() -> GangsheetOrchestrator:
    """Orchestrator wired to the database, tenant storage and design service."""
    return GangsheetOrchestrator(
        session_factory=SessionLocal,
        design_source_factory=http_design_source,
        fetch_concurrency=settings.image_fetch_concurrency,
        render_pdf_proof=settings.render_pdf_proof,
    )


@celery_app.task(bind=True, name="gangsheet_worker.tasks.generate_gangsheet.generate_gangsheet")
def generate_gangsheet(self, gangsheet_id: int) -> dict:
    """
    Generate a gangsheet: resolve designs, pack, render and upload.

    Running the task twice for the same gangsheet is harmless; only the
    first run claims it.

    Args:
        gangsheet_id: Gangsheet ID

    Returns:
        Dict with the gangsheet ID and its final status
    """
    logger.info(f"Starting gangsheet generation for gangsheet_id={gangsheet_id}")

    status = asyncio.run(build_orchestrator().run(gangsheet_id))

    return {"gangsheet_id": gangsheet_id, "status": status or "skipped"}
