"""Storage config schemas."""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StorageProvider = Literal["local", "s3"]


class StorageConfigBase(BaseModel):
    """Base storage config schema."""

    provider: StorageProvider = Field(..., description="Storage provider (local, s3)")
    base_path: str = Field(..., min_length=1, description="Directory (local) or key prefix (s3)")
    public_base_url: Optional[str] = Field(
        None, description="Public URL serving base_path; presigned/file URLs are used when empty"
    )


class StorageConfigCreate(StorageConfigBase):
    """Schema for creating a storage config.

    tenant_id comes from the X-Tenant-ID header. Credentials are sent in
    plain text and stored encrypted.
    """

    credentials: Optional[Dict[str, Any]] = Field(
        None, description="Provider credentials, e.g. aws_access_key_id, aws_secret_access_key, bucket_name"
    )


class StorageConfigUpdate(BaseModel):
    """Schema for updating a storage config."""

    provider: Optional[StorageProvider] = None
    base_path: Optional[str] = Field(None, min_length=1)
    public_base_url: Optional[str] = None
    credentials: Optional[Dict[str, Any]] = None


class StorageConfigResponse(BaseModel):
    """Schema for storage config response (credentials are never returned)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    provider: str
    base_path: str
    public_base_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
