"""Business logic services."""

from gangsheet_api.services.gangsheet_service import (
    delete_gangsheet,
    get_gangsheet,
    list_gangsheets,
    submit_gangsheet,
)
from gangsheet_api.services.settings_resolver import default_settings

__all__ = [
    "default_settings",
    "delete_gangsheet",
    "get_gangsheet",
    "list_gangsheets",
    "submit_gangsheet",
]
