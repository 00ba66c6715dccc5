"""Storage config endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gangsheet_api.api.deps import get_db, get_tenant_id
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.schemas.storage_config import (
    StorageConfigCreate,
    StorageConfigResponse,
    StorageConfigUpdate,
)
from gangsheet_api.storage.base import StorageError
from gangsheet_api.storage.encryption import encrypt_credentials
from gangsheet_api.storage.factory import get_storage_driver

router = APIRouter()


def _get_config(db: Session, tenant_id: int) -> Optional[TenantStorageConfig]:
    return db.query(TenantStorageConfig).filter(
        TenantStorageConfig.tenant_id == tenant_id
    ).first()


@router.get("/", response_model=Optional[StorageConfigResponse])
def get_storage_config(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """Get storage configuration for the tenant."""
    return _get_config(db, tenant_id)


@router.post("/", response_model=StorageConfigResponse, status_code=status.HTTP_201_CREATED)
def create_storage_config(
    config_data: StorageConfigCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """
    Create storage configuration for tenant.

    - **provider**: local or s3
    - **base_path**: Directory (local) or key prefix inside the bucket (s3)
    - **public_base_url**: Optional public URL for download links
    - **credentials**: Provider credentials, stored encrypted
    """
    if _get_config(db, tenant_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Storage config already exists for this tenant. Use PUT to update."
        )

    config = TenantStorageConfig(
        tenant_id=tenant_id,
        provider=config_data.provider,
        base_path=config_data.base_path,
        public_base_url=config_data.public_base_url,
        credentials_encrypted=encrypt_credentials(config_data.credentials) if config_data.credentials else None,
    )
    db.add(config)
    db.commit()
    db.refresh(config)

    return config


@router.put("/", response_model=StorageConfigResponse)
def update_storage_config(
    config_data: StorageConfigUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """Update storage configuration. Only provided fields are changed."""
    config = _get_config(db, tenant_id)

    if not config:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Storage config not found. Use POST to create."
        )

    updates = config_data.model_dump(exclude_unset=True)
    credentials = updates.pop("credentials", None)

    for field, value in updates.items():
        setattr(config, field, value)

    if credentials is not None:
        config.credentials_encrypted = encrypt_credentials(credentials)

    db.commit()
    db.refresh(config)

    return config


@router.post("/test")
async def test_storage_config(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """Check that the configured storage is reachable."""
    try:
        driver = get_storage_driver(db, tenant_id)
        connected = await driver.test_connection()
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {"connected": connected}


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def delete_storage_config(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_tenant_id)
):
    """Delete storage configuration."""
    config = _get_config(db, tenant_id)

    if not config:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Storage config not found"
        )

    db.delete(config)
    db.commit()
