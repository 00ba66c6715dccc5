"""Tenant schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TenantCreate(BaseModel):
    """Print shop to register."""

    name: str = Field(..., min_length=1, max_length=255)


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    is_active: Optional[bool] = Field(None, description="Inactive tenants cannot submit gangsheets")


class TenantResponse(BaseModel):
    """Tenant with its gangsheet readiness."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_active: bool
    storage_configured: bool = Field(..., description="Gangsheets can only be submitted once storage is set up")
    custom_gangsheet_settings: bool = Field(..., description="False while the built-in sheet defaults apply")
    created_at: datetime
    updated_at: datetime
