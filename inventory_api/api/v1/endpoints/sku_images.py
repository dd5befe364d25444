"""SKU image API endpoints."""

import json
import logging
from typing import List, Optional
from uuid import UUID

import pydantic
from celery.result import AsyncResult
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_api.api.deps import (
    get_current_user_id,
    get_db,
    get_session_factory,
    get_upload_config,
)
from inventory_api.celery_app import celery_app
from inventory_api.errors import NotFoundError, ValidationError
from inventory_api.models.sku import Sku
from inventory_api.schemas.sku_image import (
    BatchResult,
    BulkSkuImageFileUploadRequest,
    BulkSkuImageUploadRequest,
    BulkUploadTaskResponse,
    BulkUploadTaskStatus,
    SkuImageRecord,
)
from inventory_api.services.sku_image_repository import get_sku_images
from inventory_api.services.sku_image_service import save_bulk_sku_images
from inventory_api.services.upload_config import ImageUploadConfig
from inventory_api.services.upload_staging import discard_staged_files, stage_uploaded_files

logger = logging.getLogger(__name__)

router = APIRouter()

BULK_UPLOAD_TASK = "inventory_api.tasks.bulk_upload.process_sku_image_batch"


@router.post("/sku-images/bulk", response_model=List[BatchResult])
async def bulk_upload_sku_images(
    request: BulkSkuImageUploadRequest,
    user_id: UUID = Depends(get_current_user_id),
    config: ImageUploadConfig = Depends(get_upload_config),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    Ingest images for up to 50 SKUs.

    - **skus**: SKUs, each with `sku_id`, `sku_code` and 1-100 images
      (`source_locator` is an http(s) URL or a server-side path)

    Returns one result per SKU; a failing SKU does not fail the request.
    """
    return await save_bulk_sku_images(request.skus, user_id, config, session_factory)


@router.post("/sku-images/bulk/upload", response_model=List[BatchResult])
async def bulk_upload_sku_image_files(
    skus: str = Form(..., description="JSON array of SKU image sets"),
    files: Optional[List[UploadFile]] = File(None, description="Image files, in order"),
    user_id: UUID = Depends(get_current_user_id),
    config: ImageUploadConfig = Depends(get_upload_config),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    Ingest images sent as multipart files.

    - **skus**: JSON array shaped like the `skus` field of the JSON endpoint;
      images sent as files set `file_uploaded: true` instead of a locator
    - **files**: One file per `file_uploaded` image, in the same order
    """
    try:
        raw = json.loads(skus)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Field 'skus' is not valid JSON: {e}")

    try:
        request = BulkSkuImageFileUploadRequest.model_validate({"skus": raw})
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid SKU image payload", details={"errors": json.loads(e.json())})

    sku_codes = [entry.sku_code for entry in request.skus]
    try:
        entries = await stage_uploaded_files(request.skus, files or [], config.upload_staging_dir)
        return await save_bulk_sku_images(entries, user_id, config, session_factory)
    finally:
        discard_staged_files(config.upload_staging_dir, sku_codes)


@router.get("/skus/{sku_id}/images", response_model=List[SkuImageRecord])
async def list_sku_images(
    sku_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    List stored images of a SKU, primary first then by display order.

    - **sku_id**: SKU ID
    """
    if await db.get(Sku, sku_id) is None:
        raise NotFoundError(f"SKU not found: {sku_id}")
    return await get_sku_images(db, sku_id)


@router.post(
    "/sku-images/bulk/async",
    response_model=BulkUploadTaskResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enqueue_bulk_upload(
    request: BulkSkuImageUploadRequest,
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Queue a bulk image upload on the worker.

    Poll `GET /v1/sku-images/bulk/async/{task_id}` for the results.
    """
    task = celery_app.send_task(
        BULK_UPLOAD_TASK,
        args=[request.model_dump(mode="json"), str(user_id)],
    )
    logger.info(f"Queued bulk image upload {task.id} for {len(request.skus)} SKUs")

    return BulkUploadTaskResponse(
        task_id=task.id,
        status="PENDING",
        message=f"Bulk upload of {len(request.skus)} SKUs queued",
    )


@router.get("/sku-images/bulk/async/{task_id}", response_model=BulkUploadTaskStatus)
async def get_bulk_upload_status(task_id: str):
    """
    Get the state of a queued bulk upload.

    - **task_id**: Task ID returned when the upload was queued
    """
    result = AsyncResult(task_id, app=celery_app)

    if result.state == "SUCCESS":
        return BulkUploadTaskStatus(task_id=task_id, status=result.state, results=result.result)
    if result.state == "FAILURE":
        return BulkUploadTaskStatus(task_id=task_id, status=result.state, error=str(result.result))
    return BulkUploadTaskStatus(task_id=task_id, status=result.state)
