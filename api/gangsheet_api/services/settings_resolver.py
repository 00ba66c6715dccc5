"""Tenant default sheet settings."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from gangsheet_api.config import settings as app_settings
from gangsheet_api.models.gangsheet_settings import TenantGangsheetSettings
from gangsheet_api.schemas.gangsheet_settings import SheetSettingsOverride, SheetSettingsSchema

logger = logging.getLogger(__name__)


def builtin_default_settings() -> SheetSettingsSchema:
    """Settings used by tenants that never saved their own."""
    return SheetSettingsSchema.model_validate(app_settings.default_sheet_settings())


def get_tenant_settings_row(db: Session, tenant_id: int) -> Optional[TenantGangsheetSettings]:
    return db.query(TenantGangsheetSettings).filter(
        TenantGangsheetSettings.tenant_id == tenant_id
    ).first()


def default_settings(db: Session, tenant_id: int) -> SheetSettingsSchema:
    """
    Resolve the default sheet settings of a tenant.

    Args:
        db: Database session
        tenant_id: Tenant ID

    Returns:
        The tenant's saved settings, or the built-in defaults
    """
    row = get_tenant_settings_row(db, tenant_id)
    if row is None:
        return builtin_default_settings()
    return SheetSettingsSchema.model_validate(row)


def merge_settings(
    base: SheetSettingsSchema, override: Optional[SheetSettingsOverride]
) -> SheetSettingsSchema:
    """
    Apply the fields set in an override on top of base settings.

    Raises:
        ValidationError: If the merged settings are invalid
    """
    if override is None:
        return base

    data = base.model_dump()
    data.update(override.model_dump(exclude_unset=True))
    return SheetSettingsSchema.model_validate(data)


def save_default_settings(
    db: Session, tenant_id: int, values: SheetSettingsSchema
) -> TenantGangsheetSettings:
    """Create or replace a tenant's default settings."""
    row = get_tenant_settings_row(db, tenant_id)
    if row is None:
        row = TenantGangsheetSettings(tenant_id=tenant_id)
        db.add(row)

    for field, value in values.model_dump().items():
        setattr(row, field, value)
    row.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(row)

    logger.info(f"Saved default sheet settings for tenant {tenant_id}")
    return row

