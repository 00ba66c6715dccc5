"""Tenant default sheet settings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gangsheet_api.api.deps import get_db, get_tenant_id
from gangsheet_api.schemas.gangsheet_settings import (
    SheetSettingsSchema,
    TenantGangsheetSettingsResponse,
)
from gangsheet_api.services.settings_resolver import (
    default_settings,
    get_tenant_settings_row,
    save_default_settings,
)

router = APIRouter()


@router.get("", response_model=TenantGangsheetSettingsResponse)
def get_default_settings(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """Get the sheet settings new gangsheets start from."""
    row = get_tenant_settings_row(db, tenant_id)

    return TenantGangsheetSettingsResponse(
        **default_settings(db, tenant_id).model_dump(),
        tenant_id=tenant_id,
        is_default=row is None,
        updated_at=row.updated_at if row else None,
    )


@router.put("", response_model=TenantGangsheetSettingsResponse)
def update_default_settings(
    values: SheetSettingsSchema,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """
    Replace the tenant's default sheet settings.

    Existing gangsheets keep the settings they were submitted with.
    """
    row = save_default_settings(db, tenant_id, values)

    return TenantGangsheetSettingsResponse(
        **SheetSettingsSchema.model_validate(row).model_dump(),
        tenant_id=tenant_id,
        is_default=False,
        updated_at=row.updated_at,
    )
