"""S3-compatible storage driver (production mode)."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from inventory_api.storage.base import (
    BaseStorageDriver,
    StorageConnectionError,
    StorageError,
)

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class S3StorageDriver(BaseStorageDriver):
    """S3-compatible storage driver.

    Supports AWS S3 and S3-compatible APIs (Cloudflare R2, MinIO) through
    ``endpoint_url``.

    Configuration:
        bucket_name: Bucket name
        aws_access_key_id: Access key (optional, falls back to the default chain)
        aws_secret_access_key: Secret key (optional)
        region: AWS region (default: us-east-1)
        endpoint_url: Custom endpoint URL (for R2, MinIO, etc)
        public_base_url: URL prefix for public object links
            (default: https://<bucket>.s3.amazonaws.com)
        upload_retries: Attempts per upload (default: 3)
        retry_backoff_s: Base delay between attempts (default: 2.0)

    Example:
        >>> driver = S3StorageDriver({"bucket_name": "media-prod"})
        >>> await driver.exists("sku-images/AB/3f2c.../main.webp")
        False
    """

    def __init__(self, config: Dict[str, Any], session: Optional[Any] = None):
        super().__init__(config)
        self.bucket_name = config["bucket_name"]

        # S3 client configuration
        self.s3_config: Dict[str, Any] = {"region_name": config.get("region", "us-east-1")}
        if config.get("aws_access_key_id"):
            self.s3_config["aws_access_key_id"] = config["aws_access_key_id"]
            self.s3_config["aws_secret_access_key"] = config.get("aws_secret_access_key")

        # Support custom endpoint (Cloudflare R2, MinIO, etc)
        if config.get("endpoint_url"):
            self.s3_config["endpoint_url"] = config["endpoint_url"]

        base_url = config.get("public_base_url") or f"https://{self.bucket_name}.s3.amazonaws.com"
        self.public_base_url = base_url.rstrip("/")
        self.upload_retries = max(1, int(config.get("upload_retries", 3)))
        self.retry_backoff_s = float(config.get("retry_backoff_s", 2.0))

        self.session = session or aioboto3.Session()

    async def exists(self, key: str) -> bool:
        """Check object existence with a HEAD request."""
        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.head_object(Bucket=self.bucket_name, Key=key)
            return True

        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                return False
            raise StorageError(f"Failed to check object {key}: {e}")

    async def upload_file(
        self,
        local_path: Union[str, Path],
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Upload a local file, retrying transient failures.

        Returns:
            Public URL of the uploaded object
        """
        extra_args = {"ContentType": content_type or self.guess_content_type(key)}
        last_err: Optional[Exception] = None

        for attempt in range(1, self.upload_retries + 1):
            try:
                async with self.session.client("s3", **self.s3_config) as s3:
                    await s3.upload_file(
                        str(local_path), self.bucket_name, key, ExtraArgs=extra_args
                    )
                logger.debug(f"Uploaded {local_path} to s3://{self.bucket_name}/{key}")
                return self.public_url(key)

            except (ClientError, BotoCoreError) as e:
                last_err = e
                logger.warning(
                    f"S3 upload failed for {key} (attempt {attempt}/{self.upload_retries}): {e}"
                )
                if attempt < self.upload_retries:
                    await asyncio.sleep(self.retry_backoff_s * attempt)

        raise StorageError(f"Failed to upload {key} after {self.upload_retries} attempts: {last_err}")

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    async def test_connection(self) -> bool:
        """Test S3 connection by checking if bucket exists."""
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
