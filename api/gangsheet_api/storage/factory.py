"""Storage driver factory."""

from typing import Optional

from sqlalchemy.orm import Session

from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.storage.base import BaseStorageDriver, StorageError
from gangsheet_api.storage.encryption import decrypt_credentials
from gangsheet_api.storage.local_driver import LocalStorageDriver
from gangsheet_api.storage.s3_driver import S3StorageDriver

S3_REQUIRED_FIELDS = ["aws_access_key_id", "aws_secret_access_key", "bucket_name"]


def get_storage_driver(db: Session, tenant_id: int) -> BaseStorageDriver:
    """Get the storage driver configured for a tenant.

    Args:
        db: Database session
        tenant_id: Tenant ID

    Returns:
        Configured storage driver instance

    Raises:
        StorageError: If storage is not configured, the provider is not
            supported or the stored credentials cannot be decrypted
    """
    config = (
        db.query(TenantStorageConfig)
        .filter(TenantStorageConfig.tenant_id == tenant_id)
        .first()
    )

    if not config:
        raise StorageError(f"Storage not configured for tenant {tenant_id}")

    credentials = None
    if config.credentials_encrypted:
        try:
            credentials = decrypt_credentials(config.credentials_encrypted)
        except ValueError as e:
            raise StorageError(f"Storage credentials for tenant {tenant_id} are unreadable: {e}")

    return get_storage_driver_from_config(
        provider=config.provider,
        base_path=config.base_path,
        credentials=credentials,
        public_base_url=config.public_base_url,
    )


def get_storage_driver_from_config(
    provider: str,
    base_path: str,
    credentials: Optional[dict] = None,
    public_base_url: Optional[str] = None,
) -> BaseStorageDriver:
    """Build a storage driver from explicit configuration.

    Example:
        >>> driver = get_storage_driver_from_config(
        ...     provider="local",
        ...     base_path="/tmp/gangsheets"
        ... )
    """
    driver_config = {"base_path": base_path}

    if public_base_url:
        driver_config["public_base_url"] = public_base_url

    if credentials:
        driver_config.update(credentials)

    provider = provider.lower()

    if provider == "local":
        return LocalStorageDriver(driver_config)

    elif provider == "s3":
        missing = [f for f in S3_REQUIRED_FIELDS if f not in driver_config]
        if missing:
            raise StorageError(f"Missing required S3 configuration: {missing}")
        return S3StorageDriver(driver_config)

    else:
        raise StorageError(f"Unsupported storage provider: {provider}")
