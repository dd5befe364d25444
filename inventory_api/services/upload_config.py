"""Explicit configuration for SKU image ingestion."""

from dataclasses import dataclass, field
from typing import Optional

from inventory_api.config import Settings


@dataclass(frozen=True)
class VariantSpec:
    """Target size and WebP encoding settings for one generated variant."""

    name: str
    width: int
    quality: int
    effort: int  # WebP encoder method, 0 (fast) to 6 (smallest)


@dataclass(frozen=True)
class ImageUploadConfig:
    """Everything the ingestion workflow needs to know about its environment.

    Built once per request (or task) and passed down explicitly.
    """

    is_production: bool = False
    bucket_name: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    upload_retries: int = 3
    upload_retry_backoff_s: float = 2.0

    local_public_dir: str = "public/uploads"
    local_public_base_url: str = "/uploads"
    key_namespace: str = "sku-images"

    scratch_dir: str = "temp"
    upload_staging_dir: str = "temp/uploads"
    local_source_base_dir: str = "."

    fetch_timeout_s: float = 30.0
    max_download_bytes: int = 25 * 1024 * 1024

    batch_concurrency: int = 3
    image_concurrency_min: int = 2
    image_concurrency_max: int = 6

    main_variant: VariantSpec = field(default_factory=lambda: VariantSpec("main", 800, 70, 5))
    thumb_variant: VariantSpec = field(default_factory=lambda: VariantSpec("thumb", 200, 60, 4))

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageUploadConfig":
        """Build config from application settings."""
        return cls(
            is_production=settings.is_production,
            bucket_name=settings.s3_bucket_name,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_region=settings.aws_region,
            s3_endpoint_url=settings.s3_endpoint_url,
            s3_public_base_url=settings.s3_public_base_url,
            upload_retries=settings.upload_retries,
            upload_retry_backoff_s=settings.upload_retry_backoff_s,
            local_public_dir=settings.local_public_dir,
            local_public_base_url=settings.local_public_base_url,
            scratch_dir=settings.scratch_dir,
            upload_staging_dir=settings.upload_staging_dir,
            local_source_base_dir=settings.local_source_base_dir,
            fetch_timeout_s=settings.image_fetch_timeout_s,
            max_download_bytes=settings.max_download_bytes,
            batch_concurrency=settings.batch_concurrency,
            image_concurrency_min=settings.image_concurrency_min,
            image_concurrency_max=settings.image_concurrency_max,
            main_variant=VariantSpec(
                "main", settings.main_width, settings.main_quality, settings.main_effort
            ),
            thumb_variant=VariantSpec(
                "thumb", settings.thumb_width, settings.thumb_quality, settings.thumb_effort
            ),
        )
