"""SKU image schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _strip_locator(v):
    if not isinstance(v, str):
        return v
    v = v.strip()
    return v or None


class ImageDescriptor(BaseModel):
    """One source image to ingest.

    ``source_locator`` is either an http(s) URL or a filesystem path.
    """

    model_config = ConfigDict(extra="forbid")

    source_locator: str = Field(..., max_length=500, description="Remote URL or local file path")
    alt_text: Optional[str] = Field(None, max_length=255, description="Accessibility text")

    @field_validator("source_locator", mode="before")
    @classmethod
    def strip_locator(cls, v: Optional[str]) -> Optional[str]:
        v = _strip_locator(v)
        if v is None:
            raise ValueError("source_locator must not be blank")
        return v


class UploadedImageDescriptor(BaseModel):
    """One source image of a multipart upload.

    Exactly one of ``source_locator`` and ``file_uploaded`` names the source;
    flagged entries get the staged file path assigned before processing.
    """

    model_config = ConfigDict(extra="forbid")

    source_locator: Optional[str] = Field(
        None, max_length=500, description="Remote URL or local file path"
    )
    alt_text: Optional[str] = Field(None, max_length=255, description="Accessibility text")
    file_uploaded: bool = Field(
        default=False, description="Source is a file sent in the same multipart request"
    )

    @field_validator("source_locator", mode="before")
    @classmethod
    def strip_locator(cls, v: Optional[str]) -> Optional[str]:
        return _strip_locator(v)

    @model_validator(mode="after")
    def require_one_source(self) -> "UploadedImageDescriptor":
        if bool(self.source_locator) == self.file_uploaded:
            raise ValueError("Exactly one of source_locator or file_uploaded is required")
        return self


class SkuImageSet(BaseModel):
    """Images to ingest for one SKU."""

    sku_id: UUID = Field(..., description="Target SKU ID")
    sku_code: str = Field(..., min_length=1, max_length=100, description="SKU code")
    images: List[ImageDescriptor] = Field(..., min_length=1, max_length=100)

    @field_validator("sku_code")
    @classmethod
    def strip_sku_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("sku_code must not be blank")
        return v


class BulkSkuImageUploadRequest(BaseModel):
    """Bulk upload request body."""

    skus: List[SkuImageSet] = Field(..., min_length=1, max_length=50)


class SkuImageUploadSet(SkuImageSet):
    """Images of one SKU in a multipart upload."""

    images: List[UploadedImageDescriptor] = Field(..., min_length=1, max_length=100)


class BulkSkuImageFileUploadRequest(BaseModel):
    """Parsed ``skus`` field of a multipart bulk upload."""

    skus: List[SkuImageUploadSet] = Field(..., min_length=1, max_length=50)


class SkuImageRecord(BaseModel):
    """Persisted SKU image as returned to API callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sku_id: UUID
    image_url: str
    image_type: str
    display_order: int
    file_size_kb: Optional[int] = None
    file_format: Optional[str] = None
    alt_text: Optional[str] = None
    is_primary: bool
    group_id: UUID
    uploaded_by: Optional[UUID] = None
    uploaded_by_name: Optional[str] = None
    uploaded_at: datetime


class BatchResult(BaseModel):
    """Outcome of one SKU within a bulk upload."""

    sku_id: Optional[UUID] = None
    success: bool
    count: int = 0
    images: List[SkuImageRecord] = Field(default_factory=list)
    error: Optional[str] = None


class BulkUploadTaskResponse(BaseModel):
    """Response for an asynchronous bulk upload request."""

    task_id: str = Field(..., description="Celery task ID")
    status: str = Field(..., description="Task status")
    message: str = Field(..., description="Human-readable message")


class BulkUploadTaskStatus(BaseModel):
    """Status of an asynchronous bulk upload."""

    task_id: str
    status: str  # PENDING, STARTED, SUCCESS, FAILURE
    results: Optional[List[BatchResult]] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    db: str
    redis: str
