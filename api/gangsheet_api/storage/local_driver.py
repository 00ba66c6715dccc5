"""Local filesystem storage driver."""

import os
from datetime import datetime
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Dict, List

import aiofiles

from gangsheet_api.storage.base import BaseStorageDriver, FileInfo, StorageError


class LocalStorageDriver(BaseStorageDriver):
    """Local filesystem storage driver.

    Configuration:
        base_path: Path to the storage directory
        public_base_url: Optional URL the directory is served under; without
            it ``get_url`` returns ``file://`` URIs

    Example:
        >>> driver = LocalStorageDriver({"base_path": "/data/gangsheets"})
        >>> await driver.upload_file("tenant/1/gangsheets/7/GS_001.png", png, "image/png")
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.base_path = Path(config["base_path"]).resolve()

    def _validate_path(self, file_path: str) -> Path:
        """Resolve a key inside base_path (prevent directory traversal).

        Raises:
            StorageError: If the key tries to escape base_path
        """
        full_path = (self.base_path / file_path).resolve()

        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            raise StorageError(f"Path {file_path} attempts to escape base directory")

        return full_path

    async def list_files(self, path: str = "", pattern: str = "*") -> List[FileInfo]:
        search_path = self._validate_path(path) if path else self.base_path

        if not search_path.exists():
            return []

        files = []
        for root, _, filenames in os.walk(search_path):
            for filename in sorted(filenames):
                if not fnmatch(filename, pattern):
                    continue

                full_path = Path(root) / filename
                stat = full_path.stat()
                files.append(
                    FileInfo(
                        {
                            "name": filename,
                            "path": full_path.relative_to(self.base_path).as_posix(),
                            "size_bytes": stat.st_size,
                            "modified_at": datetime.fromtimestamp(stat.st_mtime),
                        }
                    )
                )

        return files

    async def download_file(self, file_path: str) -> bytes:
        full_path = self._validate_path(file_path)

        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()

    async def upload_file(
        self, file_path: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        """Write content to disk, creating parent directories.

        The content type is not persisted by the filesystem.
        """
        full_path = self._validate_path(file_path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise StorageError(f"Failed to upload file {file_path}: {e}")

        return full_path.relative_to(self.base_path).as_posix()

    async def get_url(self, file_path: str) -> str:
        public_url = self._public_url(file_path)
        if public_url:
            return public_url
        return self._validate_path(file_path).as_uri()

    async def delete_file(self, file_path: str) -> None:
        full_path = self._validate_path(file_path)

        try:
            full_path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete file {file_path}: {e}")

        # Drop directories left empty below base_path
        parent = full_path.parent
        while parent != self.base_path and parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    async def test_connection(self) -> bool:
        return self.base_path.is_dir() and os.access(self.base_path, os.R_OK | os.W_OK)
