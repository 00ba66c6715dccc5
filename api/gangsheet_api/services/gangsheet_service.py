"""Gangsheet lifecycle: submission, reads and deletion."""

import json
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from gangsheet_api.models.gangsheet import Gangsheet
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.models.tenant import Tenant
from gangsheet_api.schemas.gangsheet import (
    GangsheetDownloadResponse,
    GangsheetListItem,
    GangsheetProgressResponse,
    GangsheetStage,
    GangsheetStatus,
    SheetDownload,
)
from gangsheet_api.schemas.gangsheet_settings import SheetSettingsOverride
from gangsheet_api.services.settings_resolver import default_settings, merge_settings
from gangsheet_api.storage.base import BaseStorageDriver, StorageError
from gangsheet_api.storage.factory import get_storage_driver

logger = logging.getLogger(__name__)

StorageDriverFactory = Callable[[Session, int], BaseStorageDriver]


class GangsheetServiceError(Exception):
    """Base exception for gangsheet service errors."""
    pass


class GangsheetValidationError(GangsheetServiceError):
    """Submission rejected; nothing was persisted."""
    pass


class GangsheetNotFoundError(GangsheetServiceError):
    """Gangsheet not found."""
    pass


class InvalidGangsheetStateError(GangsheetServiceError):
    """Gangsheet is in invalid state for operation."""
    pass


class DeleteOutcome:
    """Result of a delete request."""

    DELETED = "deleted"
    CANCELLATION_REQUESTED = "cancellation_requested"


def gangsheet_storage_prefix(tenant_id: int, gangsheet_id: int) -> str:
    """Storage key prefix holding every artifact of a gangsheet."""
    return f"tenant/{tenant_id}/gangsheets/{gangsheet_id}"


def default_gangsheet_name(now: Optional[datetime] = None) -> str:
    return (now or datetime.utcnow()).strftime("GS_%Y%m%d_%H%M%S")


def get_gangsheet(db: Session, gangsheet_id: int, tenant_id: int) -> Gangsheet:
    """
    Get gangsheet by ID and tenant.

    Raises:
        GangsheetNotFoundError: If the gangsheet does not exist for the tenant
    """
    gangsheet = db.query(Gangsheet).filter(
        Gangsheet.id == gangsheet_id,
        Gangsheet.tenant_id == tenant_id
    ).first()

    if not gangsheet:
        raise GangsheetNotFoundError(f"Gangsheet {gangsheet_id} not found")

    return gangsheet


def submit_gangsheet(
    db: Session,
    tenant_id: int,
    name: Optional[str],
    order_ids: List[int],
    settings_override: Optional[SheetSettingsOverride] = None,
    quantity_overrides: Optional[Dict[str, int]] = None,
) -> Gangsheet:
    """
    Validate a request and persist a pending gangsheet.

    The settings are the tenant defaults with the override applied, frozen
    into the row so later changes to the defaults do not affect the job.
    The caller enqueues the generation task after this returns.

    Args:
        db: Database session
        tenant_id: Tenant ID
        name: Display name, generated when empty
        order_ids: Orders to pack (at least one)
        settings_override: Fields replacing tenant defaults
        quantity_overrides: Copies per order line id

    Returns:
        The pending Gangsheet

    Raises:
        GangsheetValidationError: If the request cannot be processed
    """
    if not order_ids:
        raise GangsheetValidationError("At least one order is required")

    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant or not tenant.is_active:
        raise GangsheetValidationError(f"Tenant {tenant_id} not found or inactive")

    storage_config = db.query(TenantStorageConfig).filter(
        TenantStorageConfig.tenant_id == tenant_id
    ).first()
    if not storage_config:
        raise GangsheetValidationError("Tenant does not have storage configured")

    try:
        sheet_settings = merge_settings(default_settings(db, tenant_id), settings_override)
    except ValidationError as e:
        raise GangsheetValidationError(f"Invalid sheet settings: {e}")

    if quantity_overrides and any(qty < 1 for qty in quantity_overrides.values()):
        raise GangsheetValidationError("Quantity overrides must be at least 1")

    gangsheet = Gangsheet(
        tenant_id=tenant_id,
        name=(name or "").strip() or default_gangsheet_name(),
        status=GangsheetStatus.PENDING,
        order_ids_json=json.dumps(list(order_ids)),
        settings_json=sheet_settings.model_dump_json(),
        quantity_overrides_json=json.dumps(quantity_overrides) if quantity_overrides else None,
    )

    db.add(gangsheet)
    db.commit()
    db.refresh(gangsheet)

    logger.info(
        f"Submitted gangsheet {gangsheet.id} ({gangsheet.name}) for tenant {tenant_id}: "
        f"{len(order_ids)} orders"
    )
    return gangsheet


def discard_unqueued(db: Session, gangsheet: Gangsheet) -> None:
    """Remove a pending gangsheet whose task could not be enqueued."""
    db.query(Gangsheet).filter(
        Gangsheet.id == gangsheet.id,
        Gangsheet.status == GangsheetStatus.PENDING
    ).delete(synchronize_session=False)
    db.commit()


def list_gangsheets(
    db: Session,
    tenant_id: int,
    page: int = 1,
    size: int = 20,
    status_filter: Optional[str] = None,
    search: Optional[str] = None
) -> Tuple[List[GangsheetListItem], int]:
    """
    List gangsheets with pagination, newest first.

    Args:
        db: Database session
        tenant_id: Tenant ID
        page: Page number (1-indexed)
        size: Page size
        status_filter: Optional status filter
        search: Optional case-insensitive name fragment

    Returns:
        Tuple of (gangsheets, total_count)
    """
    query = db.query(Gangsheet).filter(Gangsheet.tenant_id == tenant_id)

    if status_filter:
        query = query.filter(Gangsheet.status == status_filter)

    if search:
        query = query.filter(Gangsheet.name.ilike(f"%{search}%"))

    total = query.count()

    gangsheets = (
        query.order_by(Gangsheet.created_at.desc(), Gangsheet.id.desc())
        .offset((page - 1) * size)
        .limit(size)
        .all()
    )

    return [GangsheetListItem.model_validate(g) for g in gangsheets], total


def calculate_progress(gangsheet: Gangsheet) -> int:
    """Percent complete derived from status, stage and processed designs."""
    if gangsheet.status == GangsheetStatus.COMPLETED:
        return 100
    if gangsheet.status != GangsheetStatus.PROCESSING:
        return 0

    if gangsheet.stage == GangsheetStage.FETCHING_DESIGNS:
        return 10
    if gangsheet.stage == GangsheetStage.CALCULATING:
        return 30
    if gangsheet.stage == GangsheetStage.GENERATING:
        if gangsheet.total_designs:
            done = min(gangsheet.processed_designs, gangsheet.total_designs)
            return 30 + int(done * 50 / gangsheet.total_designs)
        return 30
    if gangsheet.stage == GangsheetStage.UPLOADING:
        return 90
    return 0


def get_gangsheet_progress(db: Session, gangsheet_id: int, tenant_id: int) -> GangsheetProgressResponse:
    """Current status, stage and progress of a gangsheet."""
    gangsheet = get_gangsheet(db, gangsheet_id, tenant_id)

    return GangsheetProgressResponse(
        id=gangsheet.id,
        status=gangsheet.status,
        stage=gangsheet.stage,
        progress=calculate_progress(gangsheet),
        total_designs=gangsheet.total_designs,
        processed_designs=gangsheet.processed_designs,
        sheet_count=gangsheet.sheet_count,
        download_url=gangsheet.download_url,
        error_message=gangsheet.error_message,
    )


def get_download_info(db: Session, gangsheet_id: int, tenant_id: int) -> GangsheetDownloadResponse:
    """
    Download links of a completed gangsheet.

    Raises:
        GangsheetNotFoundError: If not found
        InvalidGangsheetStateError: If the gangsheet is not completed
    """
    gangsheet = get_gangsheet(db, gangsheet_id, tenant_id)

    if gangsheet.status != GangsheetStatus.COMPLETED:
        raise InvalidGangsheetStateError(
            f"Gangsheet {gangsheet_id} is {gangsheet.status}, downloads are available once completed"
        )

    return GangsheetDownloadResponse(
        id=gangsheet.id,
        name=gangsheet.name,
        download_url=gangsheet.download_url,
        sheets=[
            SheetDownload(
                sheet_number=sheet.sheet_number,
                download_url=sheet.file_url,
                width_px=sheet.width_px,
                height_px=sheet.height_px,
                design_count=sheet.design_count,
            )
            for sheet in gangsheet.sheets
        ],
    )


async def delete_gangsheet(
    db: Session,
    gangsheet_id: int,
    tenant_id: int,
    storage_driver_factory: StorageDriverFactory = get_storage_driver,
) -> str:
    """
    Delete a gangsheet, or request cancellation while it is processing.

    - pending: the row is removed; a queued task finds nothing to claim
    - completed / failed: blobs under the gangsheet prefix are deleted,
      then the row
    - processing: ``cancel_requested`` is set and the worker removes the
      row and its uploads

    Returns:
        A DeleteOutcome value

    Raises:
        GangsheetNotFoundError: If not found
        StorageError: If artifacts of a finished gangsheet cannot be deleted
        InvalidGangsheetStateError: If the state keeps changing underneath
    """
    # Each conditional write can lose a race with the worker; re-read and retry
    for _ in range(3):
        gangsheet = get_gangsheet(db, gangsheet_id, tenant_id)

        if gangsheet.status == GangsheetStatus.PENDING:
            deleted = db.query(Gangsheet).filter(
                Gangsheet.id == gangsheet_id,
                Gangsheet.status == GangsheetStatus.PENDING
            ).delete(synchronize_session=False)
            db.commit()
            if deleted:
                logger.info(f"Deleted pending gangsheet {gangsheet_id}")
                return DeleteOutcome.DELETED

        elif gangsheet.status == GangsheetStatus.PROCESSING:
            updated = db.query(Gangsheet).filter(
                Gangsheet.id == gangsheet_id,
                Gangsheet.status == GangsheetStatus.PROCESSING
            ).update(
                {Gangsheet.cancel_requested: True, Gangsheet.updated_at: datetime.utcnow()},
                synchronize_session=False,
            )
            db.commit()
            if updated:
                logger.info(f"Cancellation requested for gangsheet {gangsheet_id}")
                return DeleteOutcome.CANCELLATION_REQUESTED

        else:
            status = gangsheet.status
            await _delete_artifacts(db, gangsheet, storage_driver_factory)
            db.delete(gangsheet)
            db.commit()
            logger.info(f"Deleted {status} gangsheet {gangsheet_id}")
            return DeleteOutcome.DELETED

        db.expire_all()

    raise InvalidGangsheetStateError(f"Gangsheet {gangsheet_id} changed state during deletion, retry")


async def _delete_artifacts(
    db: Session, gangsheet: Gangsheet, storage_driver_factory: StorageDriverFactory
) -> None:
    keys: Set[str] = {sheet.storage_key for sheet in gangsheet.sheets}
    if gangsheet.archive_key:
        keys.add(gangsheet.archive_key)

    try:
        driver = storage_driver_factory(db, gangsheet.tenant_id)
    except StorageError:
        if keys:
            raise
        logger.warning(f"No storage for tenant {gangsheet.tenant_id}; gangsheet {gangsheet.id} has no artifacts")
        return

    prefix = gangsheet_storage_prefix(gangsheet.tenant_id, gangsheet.id)
    keys.update(info.path for info in await driver.list_files(prefix))

    for key in sorted(keys):
        await driver.delete_file(key)

    logger.info(f"Deleted {len(keys)} artifacts of gangsheet {gangsheet.id}")
