"""Bulk SKU image upload task."""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from inventory_api.celery_app import celery_app
from inventory_api.config import settings
from inventory_api.schemas.sku_image import BulkSkuImageUploadRequest
from inventory_api.services.sku_image_service import save_bulk_sku_images
from inventory_api.services.upload_config import ImageUploadConfig

logger = logging.getLogger(__name__)


async def run_bulk_upload(
    request: BulkSkuImageUploadRequest,
    user_id: Optional[UUID],
    config: ImageUploadConfig,
    database_url: str,
) -> List[Dict[str, Any]]:
    """Run a bulk upload on an engine owned by this call.

    Every task invocation gets its own event loop, so pooled connections
    cannot be shared with other invocations.
    """
    engine = create_async_engine(database_url, poolclass=NullPool)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        results = await save_bulk_sku_images(request.skus, user_id, config, session_factory)
        return [result.model_dump(mode="json") for result in results]
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="inventory_api.tasks.bulk_upload.process_sku_image_batch")
def process_sku_image_batch(self, payload: Dict[str, Any], user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Process a queued bulk image upload.

    Args:
        payload: Request body (``{"skus": [...]}``)
        user_id: Uploader ID

    Returns:
        JSON-serialized ``BatchResult`` list, one per SKU
    """
    request = BulkSkuImageUploadRequest.model_validate(payload)
    logger.info(f"Starting bulk image upload task {self.request.id} with {len(request.skus)} SKUs")

    results = asyncio.run(
        run_bulk_upload(
            request,
            UUID(user_id) if user_id else None,
            ImageUploadConfig.from_settings(settings),
            settings.async_database_url,
        )
    )

    failed = sum(1 for r in results if not r["success"])
    logger.info(f"Bulk image upload task {self.request.id} done: {failed} SKUs failed")
    return results
