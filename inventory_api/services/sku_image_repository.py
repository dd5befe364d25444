"""SKU image persistence."""

import logging
from typing import Any, Dict, List, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.database import bulk_upsert
from inventory_api.errors import DatabaseError, ValidationError
from inventory_api.models.sku_image import SkuImage
from inventory_api.models.user import User

logger = logging.getLogger(__name__)

UPSERT_CONFLICT_COLUMNS = ["sku_id", "image_url"]
UPSERT_UPDATE_STRATEGIES = {
    "alt_text": "overwrite",
    "display_order": "overwrite",
    "is_primary": "overwrite",
    "uploaded_at": "now",
}


async def assert_no_existing_sku_images(session: AsyncSession, sku_id: UUID) -> None:
    """Refuse to ingest images for a SKU that already has some.

    Raises:
        ValidationError: If at least one image row exists for the SKU
        DatabaseError: If the query fails
    """
    try:
        result = await session.execute(
            select(SkuImage.id).where(SkuImage.sku_id == sku_id).limit(1)
        )
        existing = result.first()
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to check existing images for SKU {sku_id}: {e}") from e

    if existing is not None:
        raise ValidationError(
            f"Images already exist for this SKU ({sku_id}). "
            "To update, use the replace route instead.",
            details={"sku_id": str(sku_id)},
        )


async def insert_sku_images_bulk(
    session: AsyncSession,
    rows: Sequence[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Insert image rows, upserting on ``(sku_id, image_url)``.

    On conflict only ``alt_text``, ``display_order`` and ``is_primary`` are
    overwritten and ``uploaded_at`` is refreshed; all other columns keep their
    stored values.

    Returns:
        Stored rows as dicts
    """
    if not rows:
        return []

    try:
        return await bulk_upsert(
            session,
            SkuImage.__table__,
            rows,
            conflict_columns=UPSERT_CONFLICT_COLUMNS,
            update_strategies=UPSERT_UPDATE_STRATEGIES,
        )
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to insert SKU images: {e}") from e


async def get_sku_images(session: AsyncSession, sku_id: UUID) -> List[Dict[str, Any]]:
    """List a SKU's images, primary first, then by display order.

    Each row carries ``uploaded_by_name`` (uploader's first and last name)
    when the uploader still exists.
    """
    uploader_name = func.trim(
        func.coalesce(User.firstname, "") + " " + func.coalesce(User.lastname, "")
    )
    stmt = (
        select(SkuImage, uploader_name.label("uploaded_by_name"))
        .outerjoin(User, SkuImage.uploaded_by == User.id)
        .where(SkuImage.sku_id == sku_id)
        .order_by(SkuImage.is_primary.desc(), SkuImage.display_order.asc())
    )

    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to load images for SKU {sku_id}: {e}") from e

    images = []
    for image, name in result.all():
        row = {column.name: getattr(image, column.name) for column in SkuImage.__table__.columns}
        row["uploaded_by_name"] = name or None
        images.append(row)
    return images
