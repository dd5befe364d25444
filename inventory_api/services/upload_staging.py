"""Staging of files received in multipart upload requests."""

import logging
import re
import shutil
import uuid
from pathlib import Path
from typing import Iterable, List, Sequence, Union

import aiofiles
from fastapi import UploadFile

from inventory_api.errors import ValidationError
from inventory_api.schemas.sku_image import ImageDescriptor, SkuImageSet, SkuImageUploadSet

logger = logging.getLogger(__name__)

SAFE_RE = re.compile(r"[^a-zA-Z0-9_\-\.]+")
UPLOAD_CHUNK_SIZE = 1024 * 1024
ALT_TEXT_MAX_LENGTH = 255


def safe_segment(value: str) -> str:
    """Make a string usable as a single path segment."""
    value = SAFE_RE.sub("_", (value or "").strip()).strip(".")
    return value[:180] or "unnamed"


def staging_dir_for(base_dir: Union[str, Path], sku_code: str) -> Path:
    """Per-SKU staging directory; removed by the image pipeline after processing."""
    return Path(base_dir) / safe_segment(sku_code)


async def stage_uploaded_files(
    sku_sets: Sequence[SkuImageUploadSet],
    files: Sequence[UploadFile],
    base_dir: Union[str, Path],
) -> List[SkuImageSet]:
    """Attach uploaded files to the image entries flagged ``file_uploaded``.

    Files are consumed in request order: the n-th uploaded file belongs to the
    n-th flagged image across all SKUs. Each file is written to its SKU's
    staging directory and the entry's ``source_locator`` is pointed at it;
    ``alt_text`` defaults to the original file name, cut to the column size.

    Raises:
        ValidationError: If the number of files and flagged entries differ
    """
    flagged = sum(1 for s in sku_sets for img in s.images if img.file_uploaded)
    if flagged != len(files):
        raise ValidationError(
            f"Received {len(files)} files for {flagged} image entries marked as uploaded.",
            details={"files": len(files), "file_uploaded_entries": flagged},
        )

    file_iter = iter(files)
    staged_sets = []

    for sku_set in sku_sets:
        images = []
        for img in sku_set.images:
            if not img.file_uploaded:
                images.append(ImageDescriptor(source_locator=img.source_locator, alt_text=img.alt_text))
                continue

            upload = next(file_iter)
            original_name = upload.filename or "upload"
            target_dir = staging_dir_for(base_dir, sku_set.sku_code)
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / f"{uuid.uuid4().hex[:8]}_{safe_segment(original_name)}"

            async with aiofiles.open(target, "wb") as f:
                while True:
                    chunk = await upload.read(UPLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)

            logger.debug(f"Staged upload {original_name} for SKU {sku_set.sku_code} at {target}")
            images.append(
                ImageDescriptor(
                    source_locator=str(target.resolve()),
                    alt_text=img.alt_text or original_name[:ALT_TEXT_MAX_LENGTH],
                )
            )

        staged_sets.append(
            SkuImageSet(sku_id=sku_set.sku_id, sku_code=sku_set.sku_code, images=images)
        )

    return staged_sets


def discard_staged_files(base_dir: Union[str, Path], sku_codes: Iterable[str]) -> None:
    """Remove staging directories the pipeline did not get to clean up."""
    for sku_code in set(sku_codes):
        path = staging_dir_for(base_dir, sku_code)
        if not path.is_dir():
            continue
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.error(f"Failed to remove staged uploads at {path}: {e}")
