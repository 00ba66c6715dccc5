"""Gangsheet orchestrator: runs one gangsheet from pending to a terminal state."""

import asyncio
import dataclasses
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from PIL import Image
from sqlalchemy.orm import Session

from gangsheet_api.models.gangsheet import Gangsheet
from gangsheet_api.models.gangsheet_sheet import GangsheetSheet
from gangsheet_api.schemas.gangsheet import GangsheetStage, GangsheetStatus
from gangsheet_api.services.gangsheet_service import gangsheet_storage_prefix
from gangsheet_api.storage.base import BaseStorageDriver
from gangsheet_api.storage.factory import get_storage_driver
from gangsheet_worker.services.archive_service import ArchiveService
from gangsheet_worker.services.design_source import DesignFetchError, DesignSource
from gangsheet_worker.services.packing_service import (
    DesignItem,
    PackingResult,
    PackingService,
    SheetSettings,
)
from gangsheet_worker.services.render_service import (
    RasterSheet,
    RenderService,
    SourceImageUnavailableError,
    decode_image,
)

logger = logging.getLogger(__name__)

STAGE_LABELS = {
    GangsheetStage.FETCHING_DESIGNS: "Fetching designs",
    GangsheetStage.CALCULATING: "Layout",
    GangsheetStage.GENERATING: "Rendering",
    GangsheetStage.UPLOADING: "Upload",
}

MAX_ERROR_LENGTH = 2000

DesignSourceFactory = Callable[[int, BaseStorageDriver], DesignSource]


class GangsheetCancelled(Exception):
    """Deletion was requested while the gangsheet was processing."""
    pass


class StageError(Exception):
    """A pipeline stage failed; the message is stored on the gangsheet."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{STAGE_LABELS.get(stage, stage)} failed: {cause}")


@contextmanager
def stage_errors(stage: str) -> Iterator[None]:
    """Attribute any exception raised inside the block to a stage."""
    try:
        yield
    except (GangsheetCancelled, StageError):
        raise
    except Exception as e:
        raise StageError(stage, e) from e


class GangsheetOrchestrator:
    """Claim a pending gangsheet and drive it through all stages.

    Stages: fetching designs, calculating the layout, generating the sheet
    rasters, uploading sheets and archive. Every sheet is rendered before the
    first upload. Any failure leaves the gangsheet ``failed`` with
    ``"<Stage> failed: <reason>"`` and removes what was already uploaded. A
    delete request observed between steps removes uploads and the row.

    Args:
        session_factory: Callable returning a new SQLAlchemy session
        design_source_factory: Builds a DesignSource for (tenant_id, storage driver)
        storage_driver_factory: Builds the tenant storage driver from (db, tenant_id)
        fetch_concurrency: Maximum concurrent design downloads
        render_pdf_proof: Bundle a PDF proof in the archive
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        design_source_factory: DesignSourceFactory,
        storage_driver_factory: Callable[[Session, int], BaseStorageDriver] = get_storage_driver,
        packing_service: Optional[PackingService] = None,
        render_service: Optional[RenderService] = None,
        archive_service: Optional[ArchiveService] = None,
        fetch_concurrency: int = 6,
        render_pdf_proof: bool = True,
    ):
        self.session_factory = session_factory
        self.design_source_factory = design_source_factory
        self.storage_driver_factory = storage_driver_factory
        self.packing_service = packing_service or PackingService()
        self.render_service = render_service or RenderService()
        self.archive_service = archive_service or ArchiveService()
        self.fetch_concurrency = max(1, fetch_concurrency)
        self.render_pdf_proof = render_pdf_proof

    async def run(self, gangsheet_id: int) -> Optional[str]:
        """
        Process one gangsheet.

        Args:
            gangsheet_id: Gangsheet ID

        Returns:
            The final status, "cancelled" when the row was removed on
            request, or None when the gangsheet could not be claimed
        """
        db = self.session_factory()
        uploaded: List[str] = []
        storage_driver: Optional[BaseStorageDriver] = None

        try:
            if not self._claim(db, gangsheet_id):
                logger.info(f"Gangsheet {gangsheet_id} is not pending, nothing to do")
                return None

            gangsheet = db.query(Gangsheet).filter(Gangsheet.id == gangsheet_id).one()
            tenant_id = gangsheet.tenant_id
            logger.info(f"Processing gangsheet {gangsheet_id} ({gangsheet.name}) for tenant {tenant_id}")

            try:
                with stage_errors(GangsheetStage.FETCHING_DESIGNS):
                    storage_driver = self.storage_driver_factory(db, tenant_id)
                await self._execute(db, gangsheet, storage_driver, uploaded)

            except GangsheetCancelled:
                logger.info(f"Gangsheet {gangsheet_id} cancelled, removing {len(uploaded)} uploads")
                await self._cleanup(storage_driver, uploaded)
                self._remove(db, gangsheet_id)
                return "cancelled"

            except StageError as e:
                logger.error(f"Gangsheet {gangsheet_id} failed: {e}", exc_info=e.cause)
                await self._cleanup(storage_driver, uploaded)
                if self._fail(db, gangsheet_id, str(e)):
                    return GangsheetStatus.FAILED
                self._remove(db, gangsheet_id)
                return "cancelled"

            except Exception as e:
                logger.error(f"Gangsheet {gangsheet_id} failed unexpectedly: {e}", exc_info=True)
                await self._cleanup(storage_driver, uploaded)
                if self._fail(db, gangsheet_id, f"Gangsheet failed: {e}"):
                    return GangsheetStatus.FAILED
                self._remove(db, gangsheet_id)
                return "cancelled"

            logger.info(f"Gangsheet {gangsheet_id} completed")
            return GangsheetStatus.COMPLETED

        finally:
            db.close()

    async def _execute(
        self,
        db: Session,
        gangsheet: Gangsheet,
        storage_driver: BaseStorageDriver,
        uploaded: List[str],
    ) -> None:
        gangsheet_id = gangsheet.id
        tenant_id = gangsheet.tenant_id
        name = gangsheet.name
        order_ids = gangsheet.order_ids

        with stage_errors(GangsheetStage.FETCHING_DESIGNS):
            settings = SheetSettings.from_dict(gangsheet.settings)
            async with self.design_source_factory(tenant_id, storage_driver) as source:
                items = await source.resolve_design_items(order_ids)
                items = self._apply_quantity_overrides(items, gangsheet.quantity_overrides)
                self._update(
                    db, gangsheet,
                    total_designs=sum(item.quantity for item in items),
                    processed_designs=0,
                )
                self._check_cancelled(db, gangsheet_id)
                images = await self._load_images(source, items)

        self._update(db, gangsheet, stage=GangsheetStage.CALCULATING)
        self._check_cancelled(db, gangsheet_id)
        with stage_errors(GangsheetStage.CALCULATING):
            packing = self.packing_service.pack(items, settings)

        self._update(db, gangsheet, stage=GangsheetStage.GENERATING)
        rasters = self._render(db, gangsheet, packing, images, settings)

        self._update(db, gangsheet, stage=GangsheetStage.UPLOADING)
        with stage_errors(GangsheetStage.UPLOADING):
            archive = self._archive(gangsheet_id, tenant_id, name, order_ids, settings, packing, rasters)
            prefix = gangsheet_storage_prefix(tenant_id, gangsheet_id)

            sheet_rows = []
            for raster in rasters:
                self._check_cancelled(db, gangsheet_id)
                key = f"{prefix}/{self.archive_service.sheet_filename(name, raster.index)}"
                uploaded.append(key)
                await storage_driver.upload_file(key, raster.png, content_type="image/png")
                sheet_rows.append((raster, key, await storage_driver.get_url(key)))

            self._check_cancelled(db, gangsheet_id)
            archive_key = f"{prefix}/{self.archive_service.archive_filename(name)}"
            uploaded.append(archive_key)
            await storage_driver.upload_file(archive_key, archive, content_type="application/zip")
            download_url = await storage_driver.get_url(archive_key)

        with stage_errors(GangsheetStage.UPLOADING):
            self._complete(db, gangsheet_id, archive_key, download_url, sheet_rows)

    def _claim(self, db: Session, gangsheet_id: int) -> bool:
        """Move pending to processing; only one caller can win."""
        now = datetime.utcnow()
        claimed = db.query(Gangsheet).filter(
            Gangsheet.id == gangsheet_id,
            Gangsheet.status == GangsheetStatus.PENDING,
            Gangsheet.cancel_requested.is_(False),
        ).update(
            {
                Gangsheet.status: GangsheetStatus.PROCESSING,
                Gangsheet.stage: GangsheetStage.FETCHING_DESIGNS,
                Gangsheet.updated_at: now,
            },
            synchronize_session=False,
        )
        db.commit()
        return claimed == 1

    def _apply_quantity_overrides(
        self, items: Sequence[DesignItem], overrides: Dict[str, int]
    ) -> List[DesignItem]:
        if not overrides:
            return list(items)
        return [
            dataclasses.replace(item, quantity=int(overrides[item.line_id]))
            if item.line_id is not None and item.line_id in overrides
            else item
            for item in items
        ]

    async def _load_images(self, source: DesignSource, items: Sequence[DesignItem]) -> Dict[str, Image.Image]:
        """Fetch and decode each distinct raster, a bounded number at a time."""
        refs = list(dict.fromkeys(item.source_image_ref for item in items))
        semaphore = asyncio.Semaphore(self.fetch_concurrency)

        async def load(ref: str):
            async with semaphore:
                try:
                    content = await source.fetch_image(ref)
                except DesignFetchError as e:
                    raise SourceImageUnavailableError(ref, str(e))
            return ref, decode_image(ref, content)

        tasks = [asyncio.ensure_future(load(ref)) for ref in refs]
        try:
            loaded = await asyncio.gather(*tasks)
        except BaseException:
            # Nothing may outlive the design source once one fetch fails
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(f"Loaded {len(loaded)} distinct design images")
        return dict(loaded)

    def _render(
        self,
        db: Session,
        gangsheet: Gangsheet,
        packing: PackingResult,
        images: Dict[str, Image.Image],
        settings: SheetSettings,
    ) -> List[RasterSheet]:
        rasters = []
        processed = 0

        for sheet in packing.sheets:
            self._check_cancelled(db, gangsheet.id)
            with stage_errors(GangsheetStage.GENERATING):
                rasters.append(self.render_service.render_sheet(sheet, images, settings))
            processed += len(sheet.placements)
            self._update(db, gangsheet, processed_designs=processed)

        return rasters

    def _archive(
        self,
        gangsheet_id: int,
        tenant_id: int,
        name: str,
        order_ids: List[int],
        settings: SheetSettings,
        packing: PackingResult,
        rasters: List[RasterSheet],
    ) -> bytes:
        manifest = self.archive_service.build_manifest(
            gangsheet_id, tenant_id, name, order_ids, settings, packing, rasters
        )
        proof = self.archive_service.build_proof_pdf(name, rasters, settings) if self.render_pdf_proof else None
        return self.archive_service.build_archive(name, rasters, manifest, proof)

    def _update(self, db: Session, gangsheet: Gangsheet, **fields) -> None:
        for field, value in fields.items():
            setattr(gangsheet, field, value)
        gangsheet.updated_at = datetime.utcnow()
        db.commit()

        if "stage" in fields:
            logger.info(f"Gangsheet {gangsheet.id} stage: {fields['stage']}")

    def _check_cancelled(self, db: Session, gangsheet_id: int) -> None:
        cancel_requested = db.query(Gangsheet.cancel_requested).filter(
            Gangsheet.id == gangsheet_id
        ).scalar()
        # A vanished row counts as cancelled
        if cancel_requested is None or cancel_requested:
            raise GangsheetCancelled()

    def _complete(
        self,
        db: Session,
        gangsheet_id: int,
        archive_key: str,
        download_url: str,
        sheet_rows: list,
    ) -> None:
        now = datetime.utcnow()
        completed = db.query(Gangsheet).filter(
            Gangsheet.id == gangsheet_id,
            Gangsheet.status == GangsheetStatus.PROCESSING,
            Gangsheet.cancel_requested.is_(False),
        ).update(
            {
                Gangsheet.status: GangsheetStatus.COMPLETED,
                Gangsheet.stage: None,
                Gangsheet.download_url: download_url,
                Gangsheet.archive_key: archive_key,
                Gangsheet.sheet_count: len(sheet_rows),
                Gangsheet.error_message: None,
                Gangsheet.completed_at: now,
                Gangsheet.updated_at: now,
            },
            synchronize_session=False,
        )

        if completed != 1:
            db.rollback()
            raise GangsheetCancelled()

        for raster, key, url in sheet_rows:
            db.add(GangsheetSheet(
                gangsheet_id=gangsheet_id,
                sheet_number=raster.index + 1,
                width_px=raster.width_px,
                height_px=raster.height_px,
                design_count=raster.design_count,
                storage_key=key,
                file_url=url,
            ))

        db.commit()

    def _fail(self, db: Session, gangsheet_id: int, message: str) -> bool:
        """Mark the gangsheet failed unless a delete was requested meanwhile."""
        db.rollback()
        now = datetime.utcnow()
        failed = db.query(Gangsheet).filter(
            Gangsheet.id == gangsheet_id,
            Gangsheet.status == GangsheetStatus.PROCESSING,
            Gangsheet.cancel_requested.is_(False),
        ).update(
            {
                Gangsheet.status: GangsheetStatus.FAILED,
                Gangsheet.stage: None,
                Gangsheet.error_message: message[:MAX_ERROR_LENGTH],
                Gangsheet.download_url: None,
                Gangsheet.completed_at: now,
                Gangsheet.updated_at: now,
            },
            synchronize_session=False,
        )
        db.commit()
        return failed == 1

    def _remove(self, db: Session, gangsheet_id: int) -> None:
        db.rollback()
        db.query(GangsheetSheet).filter(GangsheetSheet.gangsheet_id == gangsheet_id).delete(
            synchronize_session=False
        )
        db.query(Gangsheet).filter(Gangsheet.id == gangsheet_id).delete(synchronize_session=False)
        db.commit()

    async def _cleanup(self, storage_driver: Optional[BaseStorageDriver], keys: List[str]) -> None:
        """Delete uploaded keys; failures are logged and do not escalate."""
        if storage_driver is None:
            return

        for key in keys:
            try:
                await storage_driver.delete_file(key)
            except Exception as e:
                logger.warning(f"Failed to delete {key} during cleanup: {e}")
