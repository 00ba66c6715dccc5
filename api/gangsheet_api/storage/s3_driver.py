"""S3-compatible storage driver (AWS S3, Cloudflare R2, MinIO, etc)."""

from fnmatch import fnmatch
from typing import Any, Dict, List

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from gangsheet_api.storage.base import (
    BaseStorageDriver,
    FileInfo,
    StorageConnectionError,
    StorageError,
)


class S3StorageDriver(BaseStorageDriver):
    """S3-compatible storage driver.

    Configuration:
        aws_access_key_id: Access key
        aws_secret_access_key: Secret key
        bucket_name: Bucket name
        region: AWS region (default: us-east-1)
        endpoint_url: Custom endpoint URL (for R2, MinIO, etc)
        base_path: Prefix path within bucket (optional)
        public_base_url: Public URL of the bucket (optional); without it
            ``get_url`` returns presigned URLs
        url_expires_in: Lifetime of presigned URLs in seconds (default: 3600)

    A client is opened per call and closed when the call returns.
    """

    DEFAULT_URL_EXPIRES_IN = 3600

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.bucket_name = config["bucket_name"]
        self.base_path = config.get("base_path", "").strip("/")
        self.url_expires_in = int(config.get("url_expires_in", self.DEFAULT_URL_EXPIRES_IN))

        self.s3_config = {
            "aws_access_key_id": config["aws_access_key_id"],
            "aws_secret_access_key": config["aws_secret_access_key"],
            "region_name": config.get("region", "us-east-1"),
        }

        if "endpoint_url" in config:
            self.s3_config["endpoint_url"] = config["endpoint_url"]

        self.session = aioboto3.Session()

    def _get_full_key(self, file_path: str) -> str:
        if self.base_path:
            return f"{self.base_path}/{file_path}".strip("/")
        return file_path.strip("/")

    def _strip_base_path(self, key: str) -> str:
        if self.base_path and key.startswith(self.base_path + "/"):
            return key[len(self.base_path) + 1 :]
        return key

    async def list_files(self, path: str = "", pattern: str = "*") -> List[FileInfo]:
        prefix = self._get_full_key(path) if path else self.base_path
        if prefix and not prefix.endswith("/"):
            prefix += "/"

        files = []

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                paginator = s3.get_paginator("list_objects_v2")
                async for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                    for obj in page.get("Contents", []):
                        key = obj["Key"]
                        filename = key.split("/")[-1]

                        if key.endswith("/") or not fnmatch(filename, pattern):
                            continue

                        files.append(
                            FileInfo(
                                {
                                    "name": filename,
                                    "path": self._strip_base_path(key),
                                    "size_bytes": obj["Size"],
                                    "modified_at": obj["LastModified"],
                                }
                            )
                        )

        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list files under {path}: {e}")

        return files

    async def download_file(self, file_path: str) -> bytes:
        key = self._get_full_key(file_path)

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                response = await s3.get_object(Bucket=self.bucket_name, Key=key)
                async with response["Body"] as stream:
                    return await stream.read()

        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                raise FileNotFoundError(f"File not found: {file_path}")
            raise StorageError(f"Failed to download file {file_path}: {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to download file {file_path}: {e}")

    async def upload_file(
        self, file_path: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        key = self._get_full_key(file_path)

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload file {file_path}: {e}")

        return file_path

    async def get_url(self, file_path: str) -> str:
        public_url = self._public_url(self._get_full_key(file_path))
        if public_url:
            return public_url

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                return await s3.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket_name, "Key": self._get_full_key(file_path)},
                    ExpiresIn=self.url_expires_in,
                )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to create URL for {file_path}: {e}")

    async def delete_file(self, file_path: str) -> None:
        key = self._get_full_key(file_path)

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete file {file_path}: {e}")

    async def test_connection(self) -> bool:
        """Check that the bucket exists and is reachable.

        Raises:
            StorageConnectionError: If the bucket is missing or access is denied
        """
        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.head_bucket(Bucket=self.bucket_name)
            return True

        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code in ("404", "NoSuchBucket"):
                raise StorageConnectionError(f"Bucket not found: {self.bucket_name}")
            elif error_code == "403":
                raise StorageConnectionError(f"Access denied to bucket: {self.bucket_name}")
            return False

        except BotoCoreError:
            return False
