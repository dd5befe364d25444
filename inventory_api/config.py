"""Application configuration."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "inventory"
    postgres_password: str = "changeme"
    postgres_db: str = "inventory_db"
    database_url_override: Optional[str] = None

    # Redis
    redis_url: str = "redis://redis:6379/0"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True

    # Celery
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/0"

    # Environment ("production" switches image storage to S3)
    environment: str = "development"
    log_level: str = "INFO"

    # S3 (production image storage)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    upload_retries: int = 3
    upload_retry_backoff_s: float = 2.0

    # Local storage (development image storage)
    local_public_dir: str = "public/uploads"
    local_public_base_url: str = "/uploads"

    # Transient files
    scratch_dir: str = "temp"
    upload_staging_dir: str = "temp/uploads"
    local_source_base_dir: str = "."

    # Source fetching
    image_fetch_timeout_s: float = 30.0
    max_download_bytes: int = 25 * 1024 * 1024

    # Concurrency
    batch_concurrency: int = 3
    image_concurrency_min: int = 2
    image_concurrency_max: int = 6

    # Variants
    main_width: int = 800
    main_quality: int = 70
    main_effort: int = 5
    thumb_width: int = 200
    thumb_quality: int = 60
    thumb_effort: int = 4

    @property
    def is_production(self) -> bool:
        """Whether images go to the object store instead of the local public dir."""
        return self.environment.lower() == "production"

    @property
    def async_database_url(self) -> str:
        """Build async database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
