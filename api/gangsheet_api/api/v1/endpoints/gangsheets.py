"""Gangsheet API endpoints."""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from gangsheet_api.api.deps import get_db, get_tenant_id
from gangsheet_api.celery_app import celery_app
from gangsheet_api.config import settings
from gangsheet_api.schemas.gangsheet import (
    GangsheetCreateRequest,
    GangsheetCreateResponse,
    GangsheetDownloadResponse,
    GangsheetListResponse,
    GangsheetProgressResponse,
    GangsheetResponse,
)
from gangsheet_api.services.gangsheet_service import (
    DeleteOutcome,
    GangsheetNotFoundError,
    GangsheetValidationError,
    InvalidGangsheetStateError,
    delete_gangsheet,
    discard_unqueued,
    get_download_info,
    get_gangsheet,
    get_gangsheet_progress,
    list_gangsheets,
    submit_gangsheet,
)
from gangsheet_api.storage.base import StorageError
from gangsheet_api.storage.factory import get_storage_driver

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=GangsheetCreateResponse, status_code=status.HTTP_201_CREATED)
def create_gangsheet(
    request: GangsheetCreateRequest,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    """
    Submit a gangsheet for generation.

    - **name**: Optional display name (default: GS_YYYYMMDD_HHMMSS)
    - **order_ids**: Orders whose designs are packed
    - **settings**: Optional overrides of the tenant default sheet settings
    - **quantity_overrides**: Optional copies per order line id

    Returns the gangsheet ID in status 'pending'.
    """
    try:
        gangsheet = submit_gangsheet(
            db=db,
            tenant_id=tenant_id,
            name=request.name,
            order_ids=request.order_ids,
            settings_override=request.settings,
            quantity_overrides=request.quantity_overrides,
        )
    except GangsheetValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    try:
        celery_app.send_task(settings.generate_gangsheet_task, args=[gangsheet.id])
    except Exception as e:
        logger.error(f"Failed to enqueue gangsheet {gangsheet.id}: {e}", exc_info=True)
        discard_unqueued(db, gangsheet)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Task queue unavailable, gangsheet was not created"
        )

    return GangsheetCreateResponse.model_validate(gangsheet)


@router.get("", response_model=GangsheetListResponse)
def list_all_gangsheets(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    status_filter: Optional[str] = Query(None, description="Filter by status"),
    search: Optional[str] = Query(None, description="Search by name"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    """
    List gangsheets, newest first.

    - **status_filter**: pending, processing, completed or failed
    - **search**: Part of the gangsheet name
    """
    items, total = list_gangsheets(db, tenant_id, page, size, status_filter, search)

    return GangsheetListResponse(
        items=items,
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 1
    )


@router.get("/{gangsheet_id}", response_model=GangsheetResponse)
def get_gangsheet_detail(
    gangsheet_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    """Get the full gangsheet record, including rendered sheets."""
    try:
        return GangsheetResponse.model_validate(get_gangsheet(db, gangsheet_id, tenant_id))
    except GangsheetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.get("/{gangsheet_id}/status", response_model=GangsheetProgressResponse)
def get_gangsheet_status(
    gangsheet_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    """Get status, stage and percent progress."""
    try:
        return get_gangsheet_progress(db, gangsheet_id, tenant_id)
    except GangsheetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.get("/{gangsheet_id}/download", response_model=GangsheetDownloadResponse)
def get_gangsheet_download(
    gangsheet_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    """Get the archive URL and per-sheet URLs of a completed gangsheet."""
    try:
        return get_download_info(db, gangsheet_id, tenant_id)
    except GangsheetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except InvalidGangsheetStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )


@router.delete("/{gangsheet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_gangsheet(
    gangsheet_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id),
):
    """
    Delete a gangsheet and its artifacts.

    Returns 204 when deleted, or 202 when the gangsheet is processing and
    cancellation was requested; the worker then removes it.
    """
    try:
        outcome = await delete_gangsheet(db, gangsheet_id, tenant_id, get_storage_driver)
    except GangsheetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except InvalidGangsheetStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    except (StorageError, OSError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete gangsheet artifacts: {str(e)}"
        )

    if outcome == DeleteOutcome.CANCELLATION_REQUESTED:
        return Response(status_code=status.HTTP_202_ACCEPTED)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
