"""SQLAlchemy models."""

from gangsheet_api.database import Base
from gangsheet_api.models.tenant import Tenant
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.models.gangsheet_settings import TenantGangsheetSettings
from gangsheet_api.models.gangsheet import Gangsheet
from gangsheet_api.models.gangsheet_sheet import GangsheetSheet

__all__ = [
    "Base",
    "Tenant",
    "TenantStorageConfig",
    "TenantGangsheetSettings",
    "Gangsheet",
    "GangsheetSheet",
]
