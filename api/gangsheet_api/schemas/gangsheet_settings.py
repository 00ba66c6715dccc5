"""Sheet settings schemas."""

from datetime import datetime
from typing import Optional

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _validate_color(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        ImageColor.getrgb(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a valid colour name or hex value")
    return value


class SheetSettingsSchema(BaseModel):
    """Physical constraints of one gangsheet run."""

    model_config = ConfigDict(from_attributes=True)

    roll_width_in: float = Field(..., gt=0, description="Sheet width in inches")
    roll_height_in: float = Field(..., gt=0, description="Sheet height in inches")
    dpi: int = Field(..., gt=0, le=1200, description="Print resolution")
    gap_in: float = Field(..., ge=0, description="Spacing between designs (and edge margin without border)")
    border: bool = Field(..., description="Stroke a border around each design")
    border_size_in: float = Field(..., ge=0, description="Border width in inches")
    border_color: str = Field(..., description="Border colour (CSS name or hex)")
    auto_arrange: bool = Field(True, description="Sort and rotate designs to save sheets")
    max_designs_per_sheet: Optional[int] = Field(None, ge=1)
    background_color: Optional[str] = Field(None, description="Canvas colour; empty means transparent")

    @field_validator("border_color", "background_color")
    @classmethod
    def check_colors(cls, value: Optional[str]) -> Optional[str]:
        return _validate_color(value)


class SheetSettingsOverride(BaseModel):
    """Partial settings; given fields replace the tenant defaults."""

    roll_width_in: Optional[float] = Field(None, gt=0)
    roll_height_in: Optional[float] = Field(None, gt=0)
    dpi: Optional[int] = Field(None, gt=0, le=1200)
    gap_in: Optional[float] = Field(None, ge=0)
    border: Optional[bool] = None
    border_size_in: Optional[float] = Field(None, ge=0)
    border_color: Optional[str] = None
    auto_arrange: Optional[bool] = None
    max_designs_per_sheet: Optional[int] = Field(None, ge=1)
    background_color: Optional[str] = None

    @field_validator("border_color", "background_color")
    @classmethod
    def check_colors(cls, value: Optional[str]) -> Optional[str]:
        return _validate_color(value)


class TenantGangsheetSettingsResponse(SheetSettingsSchema):
    """Tenant default settings as stored."""

    tenant_id: int
    is_default: bool = Field(False, description="True when no tenant row exists and built-in defaults apply")
    updated_at: Optional[datetime] = None
