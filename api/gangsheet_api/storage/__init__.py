"""Per-tenant blob storage for gangsheet artifacts and design rasters."""

from gangsheet_api.storage.base import BaseStorageDriver, StorageError
from gangsheet_api.storage.factory import get_storage_driver, get_storage_driver_from_config

__all__ = [
    "BaseStorageDriver",
    "StorageError",
    "get_storage_driver",
    "get_storage_driver_from_config",
]
