"""SKU image pipeline: resolve, hash, reuse or generate, upload."""

import asyncio
import logging
import os
import shutil
import tempfile
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence

import aiofiles.os

from inventory_api.schemas.sku_image import ImageDescriptor
from inventory_api.services.concurrency import gather_all, run_settled
from inventory_api.services.content_hash import brand_prefix, build_key_prefix, compute_file_hash
from inventory_api.services.source_resolver import SourceResolver
from inventory_api.services.upload_config import ImageUploadConfig
from inventory_api.services.upload_staging import safe_segment, staging_dir_for
from inventory_api.services.variant_generator import (
    VARIANT_FORMAT,
    VariantGenerator,
    source_extension,
)
from inventory_api.storage.base import BaseStorageDriver
from inventory_api.storage.factory import get_storage_driver

logger = logging.getLogger(__name__)

MAIN = "main"
THUMBNAIL = "thumbnail"
ZOOM = "zoom"


@dataclass
class ImageVariant:
    """One stored form of a source image, ready to be persisted."""

    image_url: str
    image_type: str
    display_order: int
    is_primary: bool
    content_hash: str
    file_size_kb: Optional[int] = None
    file_format: Optional[str] = None
    alt_text: Optional[str] = None


def adaptive_concurrency(minimum: int, maximum: int) -> int:
    """CPU count minus one, clamped to ``[minimum, maximum]``."""
    cpus = os.cpu_count() or 1
    return min(max(cpus - 1, minimum), maximum)


def _size_kb(size_bytes: int) -> int:
    return int(size_bytes / 1024 + 0.5)


class ImagePipeline:
    """Processes the image set of one SKU.

    For every source image:
      - resolve it to a local file (download or local path)
      - compute its SHA-256, which names the storage folder
      - in production, reuse existing main/thumbnail objects for that hash
      - otherwise render main + thumbnail WebP variants and upload them
        together with the untouched original (zoom)

    Images are processed concurrently under an adaptive cap. A failing image
    is logged and skipped. The per-SKU scratch directory is always removed.
    """

    def __init__(
        self,
        config: ImageUploadConfig,
        storage: Optional[BaseStorageDriver] = None,
        resolver: Optional[SourceResolver] = None,
        generator: Optional[VariantGenerator] = None,
    ):
        self.config = config
        self.storage = storage or get_storage_driver(config)
        self.resolver = resolver or SourceResolver(
            local_base_dir=config.local_source_base_dir,
            timeout_s=config.fetch_timeout_s,
            max_download_bytes=config.max_download_bytes,
        )
        self.generator = generator or VariantGenerator(config.main_variant, config.thumb_variant)
        self.concurrency = adaptive_concurrency(
            config.image_concurrency_min, config.image_concurrency_max
        )

    async def process(self, images: Sequence[ImageDescriptor], sku_code: str) -> List[ImageVariant]:
        """Process all images of one SKU.

        Args:
            images: Source images, in display order
            sku_code: SKU code (brand folder and scratch naming)

        Returns:
            Variants of every image that succeeded, in input order
            (main, thumbnail, zoom per image)

        Raises:
            ValidationError: If the SKU code cannot name a brand folder
        """
        if not images:
            logger.info(f"No images passed to pipeline for SKU {sku_code}")
            return []

        started = time.monotonic()
        async with self.scratch_directory(sku_code) as scratch:
            brand_prefix(sku_code)
            outcomes = await run_settled(
                list(enumerate(images)),
                self.concurrency,
                lambda item: self._process_single(item[1], item[0], sku_code, scratch),
            )

        processed: List[ImageVariant] = []
        for outcome in outcomes:
            if outcome.value:
                processed.extend(outcome.value)

        logger.info(
            f"Completed image pipeline for SKU {sku_code}: "
            f"{len(processed)} variants from {len(images)} images "
            f"in {int((time.monotonic() - started) * 1000)}ms"
        )
        return processed

    @asynccontextmanager
    async def scratch_directory(self, sku_code: str) -> AsyncIterator[Path]:
        """Create a unique scratch directory and remove it on every exit path.

        The upload-staging directory of the same SKU is removed too, if present.
        """
        root = Path(self.config.scratch_dir)
        root.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix=f"{safe_segment(sku_code)}-", dir=root))
        try:
            yield scratch
        finally:
            # Synchronous so removal also completes while the task is being cancelled
            self._remove_tree(scratch, sku_code)
            staging = staging_dir_for(self.config.upload_staging_dir, sku_code)
            if staging.is_dir():
                self._remove_tree(staging, sku_code)
            logger.debug(f"Temporary files cleaned up for SKU {sku_code}")

    @staticmethod
    def _remove_tree(path: Path, sku_code: str) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove temporary directory {path} for SKU {sku_code}: {e}")

    async def _process_single(
        self,
        descriptor: ImageDescriptor,
        index: int,
        sku_code: str,
        scratch: Path,
    ) -> Optional[List[ImageVariant]]:
        """Process one image; returns None on failure."""
        try:
            source = await self.resolver.resolve(descriptor, scratch, index)
            content_hash = await compute_file_hash(source)

            prefix = build_key_prefix(self.config.key_namespace, sku_code, content_hash)
            extension = source.suffix.lower()
            main_key = f"{prefix}/main.{VARIANT_FORMAT}"
            thumb_key = f"{prefix}/thumb.{VARIANT_FORMAT}"
            alt_text = descriptor.alt_text or ""

            if self.config.is_production:
                main_exists, thumb_exists = await gather_all(
                    self.storage.exists(main_key),
                    self.storage.exists(thumb_key),
                )
                if main_exists and thumb_exists:
                    logger.info(
                        f"Variants already stored for SKU {sku_code}, skipping resize/upload: {prefix}"
                    )
                    return [
                        ImageVariant(
                            image_url=self.storage.public_url(main_key),
                            image_type=MAIN,
                            display_order=0,
                            is_primary=True,
                            content_hash=content_hash,
                            file_format=VARIANT_FORMAT,
                            alt_text=alt_text,
                        ),
                        ImageVariant(
                            image_url=self.storage.public_url(thumb_key),
                            image_type=THUMBNAIL,
                            display_order=1,
                            is_primary=False,
                            content_hash=content_hash,
                            file_format=VARIANT_FORMAT,
                            alt_text=alt_text,
                        ),
                    ]

            main_path = scratch / f"{index}_main.{VARIANT_FORMAT}"
            thumb_path = scratch / f"{index}_thumb.{VARIANT_FORMAT}"
            await self.generator.generate(source, main_path, thumb_path)

            if not extension:
                extension = await asyncio.to_thread(source_extension, source)
            zoom_key = f"{prefix}/zoom{extension}"

            main_url, thumb_url, zoom_url = await gather_all(
                self.storage.upload_file(main_path, main_key),
                self.storage.upload_file(thumb_path, thumb_key),
                self.storage.upload_file(source, zoom_key),
            )

            main_stat, thumb_stat, zoom_stat = await gather_all(
                aiofiles.os.stat(main_path),
                aiofiles.os.stat(thumb_path),
                aiofiles.os.stat(source),
            )

            return [
                ImageVariant(
                    image_url=main_url,
                    image_type=MAIN,
                    display_order=0,
                    is_primary=True,
                    content_hash=content_hash,
                    file_size_kb=_size_kb(main_stat.st_size),
                    file_format=VARIANT_FORMAT,
                    alt_text=alt_text,
                ),
                ImageVariant(
                    image_url=thumb_url,
                    image_type=THUMBNAIL,
                    display_order=1,
                    is_primary=False,
                    content_hash=content_hash,
                    file_size_kb=_size_kb(thumb_stat.st_size),
                    file_format=VARIANT_FORMAT,
                    alt_text=alt_text,
                ),
                ImageVariant(
                    image_url=zoom_url,
                    image_type=ZOOM,
                    display_order=2,
                    is_primary=False,
                    content_hash=content_hash,
                    file_size_kb=_size_kb(zoom_stat.st_size),
                    file_format=extension.lstrip(".") or VARIANT_FORMAT,
                    alt_text=alt_text,
                ),
            ]

        except Exception as e:
            logger.error(
                f"Error processing image {descriptor.source_locator!r} for SKU {sku_code}: {e}",
                exc_info=True,
            )
            return None
