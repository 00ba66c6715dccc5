"""Base storage driver interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional


class FileInfo(Dict[str, Any]):
    """Blob information dict with typed access."""

    @property
    def name(self) -> str:
        return self["name"]

    @property
    def path(self) -> str:
        return self["path"]

    @property
    def size_bytes(self) -> int:
        return self["size_bytes"]

    @property
    def modified_at(self) -> datetime:
        return self["modified_at"]


class BaseStorageDriver(ABC):
    """Base class for blob storage drivers.

    Drivers persist rendered gangsheet artifacts and read design rasters
    stored in the tenant's bucket or directory. Keys are relative to the
    driver's ``base_path``; every operation is async.
    """

    def __init__(self, config: Dict[str, Any]):
        """Initialize storage driver with configuration.

        Args:
            config: Storage configuration dict with provider-specific settings.
                ``public_base_url`` (optional) turns keys into public URLs.
        """
        self.config = config
        self.public_base_url: Optional[str] = (config.get("public_base_url") or "").rstrip("/") or None

    @abstractmethod
    async def list_files(self, path: str = "", pattern: str = "*") -> List[FileInfo]:
        """List blobs below a key prefix, recursively.

        Args:
            path: Key prefix (relative to base_path)
            pattern: Glob pattern matched against the blob name

        Returns:
            List of FileInfo dicts with: name, path, size_bytes, modified_at

        Raises:
            StorageError: If listing fails
        """
        pass

    @abstractmethod
    async def download_file(self, file_path: str) -> bytes:
        """Read a blob.

        Raises:
            StorageError: If download fails
            FileNotFoundError: If the blob doesn't exist
        """
        pass

    @abstractmethod
    async def upload_file(
        self, file_path: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        """Write a blob, replacing any previous content under the key.

        Args:
            file_path: Destination key (relative to base_path)
            content: Blob content
            content_type: MIME type recorded with the blob where supported

        Returns:
            The key that was written

        Raises:
            StorageError: If upload fails
        """
        pass

    @abstractmethod
    async def get_url(self, file_path: str) -> str:
        """Return a URL a client can download the blob from.

        Raises:
            StorageError: If no URL can be produced
        """
        pass

    @abstractmethod
    async def delete_file(self, file_path: str) -> None:
        """Delete a blob. Deleting a missing key is not an error.

        Raises:
            StorageError: If deletion fails
        """
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test if storage is accessible."""
        pass

    def _public_url(self, file_path: str) -> Optional[str]:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{file_path.lstrip('/')}"


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class StorageConnectionError(StorageError):
    """Exception for connection errors."""

    pass
