"""Gangsheet schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gangsheet_api.schemas.gangsheet_settings import SheetSettingsOverride, SheetSettingsSchema


class GangsheetStatus:
    """Gangsheet status values."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = (COMPLETED, FAILED)


class GangsheetStage:
    """Fine-grained step of a processing gangsheet."""

    FETCHING_DESIGNS = "fetching_designs"
    CALCULATING = "calculating"
    GENERATING = "generating"
    UPLOADING = "uploading"


# Create
class GangsheetCreateRequest(BaseModel):
    """Request to generate a gangsheet from a set of orders."""

    name: Optional[str] = Field(
        None,
        max_length=255,
        description="Display name; defaults to GS_YYYYMMDD_HHMMSS",
    )
    order_ids: List[int] = Field(..., min_length=1, description="Orders whose designs are packed")
    settings: Optional[SheetSettingsOverride] = Field(
        None, description="Fields overriding the tenant default settings"
    )
    quantity_overrides: Optional[Dict[str, int]] = Field(
        None, description="Copies per order line, keyed by line id"
    )

    @field_validator("order_ids")
    @classmethod
    def unique_order_ids(cls, value: List[int]) -> List[int]:
        # Keep first occurrence order
        return list(dict.fromkeys(value))

    @field_validator("quantity_overrides")
    @classmethod
    def positive_quantities(cls, value: Optional[Dict[str, int]]) -> Optional[Dict[str, int]]:
        if value:
            bad = [line for line, qty in value.items() if qty < 1]
            if bad:
                raise ValueError(f"Quantities must be at least 1 (lines: {', '.join(bad)})")
        return value


class GangsheetCreateResponse(BaseModel):
    """Response after submitting a gangsheet."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    name: str
    created_at: datetime


# Read
class GangsheetSheetResponse(BaseModel):
    """A rendered sheet."""

    model_config = ConfigDict(from_attributes=True)

    sheet_number: int
    width_px: int
    height_px: int
    design_count: int
    file_url: str


class GangsheetResponse(BaseModel):
    """Full gangsheet record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    name: str
    status: str
    stage: Optional[str] = None
    order_ids: List[int]
    settings: SheetSettingsSchema
    quantity_overrides: Dict[str, int] = {}
    sheet_count: int
    total_designs: int
    processed_designs: int
    download_url: Optional[str] = None
    error_message: Optional[str] = None
    cancel_requested: bool = False
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    sheets: List[GangsheetSheetResponse] = []


class GangsheetListItem(BaseModel):
    """Gangsheet summary for lists."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: str
    stage: Optional[str] = None
    sheet_count: int
    total_designs: int
    download_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class GangsheetListResponse(BaseModel):
    """Paginated gangsheets."""

    items: List[GangsheetListItem]
    total: int
    page: int
    size: int
    pages: int


class GangsheetProgressResponse(BaseModel):
    """Status and progress of a gangsheet."""

    id: int
    status: str
    stage: Optional[str] = None
    progress: int = Field(..., ge=0, le=100, description="Percent complete")
    total_designs: int
    processed_designs: int
    sheet_count: int
    download_url: Optional[str] = None
    error_message: Optional[str] = None


class SheetDownload(BaseModel):
    """Download link of one sheet."""

    sheet_number: int
    download_url: str
    width_px: int
    height_px: int
    design_count: int


class GangsheetDownloadResponse(BaseModel):
    """Download links of a completed gangsheet."""

    id: int
    name: str
    download_url: str
    sheets: List[SheetDownload]
