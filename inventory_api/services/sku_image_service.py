"""SKU image ingestion workflow.

``save_sku_images`` stores the images of one SKU inside the caller's
transaction; ``save_bulk_sku_images`` fans a batch out over independent
transactions and reports one ``BatchResult`` per SKU.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_api.database import lock_row, run_in_transaction
from inventory_api.errors import AppError, NotFoundError, ServiceError, ValidationError
from inventory_api.models.sku import Sku
from inventory_api.schemas.sku_image import (
    BatchResult,
    ImageDescriptor,
    SkuImageRecord,
    SkuImageSet,
)
from inventory_api.services.concurrency import run_settled
from inventory_api.services.image_pipeline import MAIN, ImagePipeline, ImageVariant
from inventory_api.services.sku_image_repository import (
    assert_no_existing_sku_images,
    insert_sku_images_bulk,
)
from inventory_api.services.upload_config import ImageUploadConfig

logger = logging.getLogger(__name__)

# Namespace for group ids shared by the variants of one source image
SKU_IMAGE_GROUP_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "sku-images")


def image_group_id(sku_id: UUID, content_hash: str) -> UUID:
    """Stable group id for all variants of one source image of a SKU."""
    return uuid.uuid5(SKU_IMAGE_GROUP_NAMESPACE, f"{sku_id}:{content_hash}")


def dedupe_variants(variants: Sequence[ImageVariant]) -> List[ImageVariant]:
    """Collapse variants sharing an ``image_url``.

    The first occurrence keeps its position; the metadata of the latest
    duplicate replaces it.
    """
    by_url: Dict[str, ImageVariant] = {}
    for variant in variants:
        by_url[variant.image_url] = variant
    return list(by_url.values())


def build_image_rows(
    variants: Sequence[ImageVariant],
    sku_id: UUID,
    user_id: Optional[UUID],
) -> List[dict]:
    """Turn pipeline output into ``sku_images`` rows.

    ``display_order`` follows list position and only the first ``main``
    variant is flagged primary.
    """
    uploaded_at = datetime.now(timezone.utc)
    rows = []
    primary_assigned = False

    for position, variant in enumerate(variants):
        is_primary = variant.image_type == MAIN and not primary_assigned
        if is_primary:
            primary_assigned = True

        rows.append(
            {
                "id": uuid.uuid4(),
                "sku_id": sku_id,
                "image_url": variant.image_url,
                "image_type": variant.image_type,
                "display_order": position,
                "file_size_kb": variant.file_size_kb,
                "file_format": variant.file_format,
                "alt_text": variant.alt_text,
                "is_primary": is_primary,
                "group_id": image_group_id(sku_id, variant.content_hash),
                "uploaded_by": user_id,
                "uploaded_at": uploaded_at,
            }
        )

    return rows


async def save_sku_images(
    session: AsyncSession,
    images: Sequence[ImageDescriptor],
    sku_id: Optional[UUID],
    sku_code: str,
    user_id: Optional[UUID],
    config: ImageUploadConfig,
    pipeline: Optional[ImagePipeline] = None,
) -> List[SkuImageRecord]:
    """Process and persist the images of one SKU.

    Must run inside a transaction on ``session``: the SKU row stays locked
    until it ends, so concurrent uploads for the same SKU serialize.

    Args:
        session: Session with an open transaction
        images: Source images in display order
        sku_id: Target SKU
        sku_code: SKU code as sent by the caller (the locked row's code wins)
        user_id: Uploader
        config: Image upload configuration
        pipeline: Pipeline to use (default: built from ``config``)

    Returns:
        Stored image records; empty if nothing was given or every image failed

    Raises:
        ValidationError: Missing SKU id, or the SKU already has images
        NotFoundError: SKU does not exist
        ServiceError: Any unexpected failure
    """
    if not sku_id:
        raise ValidationError("SKU ID is required.")
    if not images:
        return []

    started = time.monotonic()
    try:
        sku = await lock_row(session, Sku, sku_id)
        if sku is None:
            raise NotFoundError(f"SKU not found: {sku_id}", details={"sku_id": str(sku_id)})

        await assert_no_existing_sku_images(session, sku_id)

        if sku.sku != sku_code:
            logger.warning(
                f"SKU code {sku_code!r} does not match stored code {sku.sku!r} for {sku_id}"
            )

        pipeline = pipeline or ImagePipeline(config)
        variants = await pipeline.process(images, sku.sku)
        if not variants:
            logger.warning(f"No images were processed for SKU {sku.sku} ({sku_id})")
            return []

        unique = dedupe_variants(variants)
        if len(unique) < len(variants):
            logger.info(
                f"Removed {len(variants) - len(unique)} duplicate images for SKU {sku.sku}"
            )

        rows = build_image_rows(unique, sku_id, user_id)
        stored = await insert_sku_images_bulk(session, rows)
        stored.sort(key=lambda row: row["display_order"])

        logger.info(
            f"Saved {len(stored)} images for SKU {sku.sku} ({sku_id}) "
            f"in {int((time.monotonic() - started) * 1000)}ms"
        )
        return [SkuImageRecord.model_validate(row) for row in stored]

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error saving images for SKU {sku_id}: {e}", exc_info=True)
        raise ServiceError(f"Failed to save images for SKU {sku_id}: {e}") from e


async def save_bulk_sku_images(
    entries: Sequence[SkuImageSet],
    user_id: Optional[UUID],
    config: ImageUploadConfig,
    session_factory: async_sessionmaker,
    pipeline: Optional[ImagePipeline] = None,
) -> List[BatchResult]:
    """Ingest images for many SKUs.

    Each SKU runs ``save_sku_images`` in its own transaction, at most
    ``config.batch_concurrency`` at a time. A failing SKU is reported in its
    ``BatchResult`` and never affects the others.

    Returns:
        One result per entry, in input order

    Example:
        >>> results = await save_bulk_sku_images(
        ...     [SkuImageSet(sku_id=sku_id, sku_code="AB-001",
        ...                  images=[ImageDescriptor(source_locator="https://cdn/a.jpg")])],
        ...     user_id=user_id,
        ...     config=ImageUploadConfig.from_settings(settings),
        ...     session_factory=AsyncSessionLocal,
        ... )
        >>> results[0].count
        3
    """
    if not entries:
        return []

    started = time.monotonic()
    try:
        pipeline = pipeline or ImagePipeline(config)

        async def save_entry(entry: SkuImageSet) -> List[SkuImageRecord]:
            return await run_in_transaction(
                session_factory,
                lambda session: save_sku_images(
                    session,
                    entry.images,
                    entry.sku_id,
                    entry.sku_code,
                    user_id,
                    config,
                    pipeline=pipeline,
                ),
            )

        outcomes = await run_settled(entries, config.batch_concurrency, save_entry)

        results = []
        for entry, outcome in zip(entries, outcomes):
            if outcome.ok and (outcome.value or not entry.images):
                records = outcome.value or []
                results.append(
                    BatchResult(sku_id=entry.sku_id, success=True, count=len(records), images=records)
                )
            elif outcome.ok:
                # Every image of the SKU was dropped by the pipeline
                logger.error(f"No images could be processed for SKU {entry.sku_code}")
                results.append(
                    BatchResult(
                        sku_id=entry.sku_id,
                        success=False,
                        error=f"No images could be processed for SKU {entry.sku_code}",
                    )
                )
            else:
                logger.error(f"Bulk image upload failed for SKU {entry.sku_code}: {outcome.error}")
                results.append(
                    BatchResult(sku_id=entry.sku_id, success=False, error=str(outcome.error))
                )

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Bulk image upload failed: {e}", exc_info=True)
        raise ServiceError(f"Bulk image upload failed: {e}") from e

    succeeded = sum(1 for r in results if r.success)
    logger.info(
        f"Bulk image upload finished: {succeeded}/{len(results)} SKUs succeeded "
        f"in {int((time.monotonic() - started) * 1000)}ms"
    )
    return results
