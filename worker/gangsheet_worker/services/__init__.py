"""Worker services."""

from gangsheet_worker.services.archive_service import ArchiveService
from gangsheet_worker.services.design_source import DesignSource, HttpDesignSource
from gangsheet_worker.services.orchestrator import GangsheetOrchestrator
from gangsheet_worker.services.packing_service import PackingService
from gangsheet_worker.services.render_service import RenderService

__all__ = [
    "ArchiveService",
    "DesignSource",
    "HttpDesignSource",
    "GangsheetOrchestrator",
    "PackingService",
    "RenderService",
]
