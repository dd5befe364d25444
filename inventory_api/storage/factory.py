"""Storage driver factory."""

from inventory_api.services.upload_config import ImageUploadConfig
from inventory_api.storage.base import BaseStorageDriver, StorageError
from inventory_api.storage.local_driver import LocalStorageDriver
from inventory_api.storage.s3_driver import S3StorageDriver


def get_storage_driver(config: ImageUploadConfig) -> BaseStorageDriver:
    """Get the storage driver for the configured mode.

    Args:
        config: Upload configuration

    Returns:
        S3 driver in production mode, local public-directory driver otherwise

    Raises:
        StorageError: If production mode has no bucket configured

    Example:
        >>> driver = get_storage_driver(ImageUploadConfig(is_production=False))
        >>> driver.public_url("sku-images/AB/f00/main.webp")
        '/uploads/sku-images/AB/f00/main.webp'
    """
    if config.is_production:
        if not config.bucket_name:
            raise StorageError("Production image storage requires a bucket name")
        return S3StorageDriver(
            {
                "bucket_name": config.bucket_name,
                "aws_access_key_id": config.aws_access_key_id,
                "aws_secret_access_key": config.aws_secret_access_key,
                "region": config.aws_region,
                "endpoint_url": config.s3_endpoint_url,
                "public_base_url": config.s3_public_base_url,
                "upload_retries": config.upload_retries,
                "retry_backoff_s": config.upload_retry_backoff_s,
            }
        )

    return LocalStorageDriver(
        {
            "base_path": config.local_public_dir,
            "public_base_url": config.local_public_base_url,
        }
    )
