"""Resized raster variants for SKU images."""

import asyncio
import io
import logging
import os
import uuid
from pathlib import Path

from PIL import Image, ImageFile, ImageOps

from inventory_api.errors import FileSystemError
from inventory_api.services.concurrency import gather_all
from inventory_api.services.upload_config import VariantSpec

logger = logging.getLogger(__name__)

ImageFile.LOAD_TRUNCATED_IMAGES = True

VARIANT_FORMAT = "webp"

FORMAT_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
    "GIF": ".gif",
    "TIFF": ".tif",
    "BMP": ".bmp",
}


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA"):
        return True
    if im.mode == "P":
        return "transparency" in (im.info or {})
    return False


def _to_mode_for_webp(im: Image.Image) -> Image.Image:
    if im.mode == "P":
        return im.convert("RGBA") if _has_alpha(im) else im.convert("RGB")
    if im.mode == "CMYK":
        return im.convert("RGB")
    if _has_alpha(im):
        return im.convert("RGBA") if im.mode != "RGBA" else im
    return im.convert("RGB") if im.mode != "RGB" else im


def _save_atomic_bytes(data: bytes, path: Path) -> None:
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    with open(tmp, "wb") as f:
        f.write(data)
    os.replace(tmp, path)


def render_variant(source: Path, dest: Path, spec: VariantSpec) -> Path:
    """Resize ``source`` to the variant width and write it as WebP.

    Aspect ratio is kept and smaller images are never enlarged.

    Raises:
        FileSystemError: If the source cannot be decoded or the output written
    """
    try:
        with Image.open(source) as im:
            im = _to_mode_for_webp(ImageOps.exif_transpose(im))

            if im.width > spec.width:
                height = max(1, round(im.height * spec.width / im.width))
                im = im.resize((spec.width, height), Image.Resampling.LANCZOS)

            out = io.BytesIO()
            im.save(out, format="WEBP", quality=spec.quality, method=spec.effort)

        _save_atomic_bytes(out.getvalue(), dest)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise FileSystemError(f"Failed to generate {spec.name} variant from {source}: {e}") from e

    return dest


def source_extension(source: Path) -> str:
    """File extension matching the decoded format of ``source``.

    Raises:
        FileSystemError: If the source cannot be decoded
    """
    try:
        with Image.open(source) as im:
            fmt = (im.format or "").upper()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise FileSystemError(f"Failed to detect image format of {source}: {e}") from e

    if not fmt:
        return ""
    return FORMAT_EXTENSIONS.get(fmt, f".{fmt.lower()}")


class VariantGenerator:
    """Produces the main and thumbnail variants of a source image."""

    def __init__(self, main: VariantSpec, thumb: VariantSpec):
        self.main = main
        self.thumb = thumb

    async def generate(self, source: Path, main_path: Path, thumb_path: Path) -> None:
        """Render both variants concurrently in worker threads."""
        await gather_all(
            asyncio.to_thread(render_variant, source, main_path, self.main),
            asyncio.to_thread(render_variant, source, thumb_path, self.thumb),
        )
        logger.debug(f"Generated variants for {source}: {main_path.name}, {thumb_path.name}")
