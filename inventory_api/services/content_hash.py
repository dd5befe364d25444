"""Content addressing for resolved image files."""

import hashlib
from pathlib import Path
from typing import Union

import aiofiles

from inventory_api.errors import FileSystemError, ValidationError

HASH_CHUNK_SIZE = 64 * 1024


async def compute_file_hash(path: Union[str, Path]) -> str:
    """Compute the SHA-256 hex digest of a file.

    The file is read in fixed-size chunks, so memory use does not depend on
    file size.

    Raises:
        FileSystemError: If the file cannot be read

    Examples:
        >>> await compute_file_hash("temp/AB-100/0_front.jpg")
        '9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08'
    """
    digest = hashlib.sha256()
    try:
        async with aiofiles.open(path, "rb") as f:
            while True:
                chunk = await f.read(HASH_CHUNK_SIZE)
                if not chunk:
                    break
                digest.update(chunk)
    except OSError as e:
        raise FileSystemError(f"Failed to hash file {path}: {e}") from e

    return digest.hexdigest()


def brand_prefix(sku_code: str) -> str:
    """First two characters of the SKU code, upper-cased.

    Raises:
        ValidationError: If the code is shorter than two characters
    """
    code = (sku_code or "").strip()
    if len(code) < 2:
        raise ValidationError(f"SKU code too short to derive a brand folder: {sku_code!r}")
    return code[:2].upper()


def build_key_prefix(namespace: str, sku_code: str, content_hash: str) -> str:
    """Build the content-addressed storage prefix.

    Examples:
        >>> build_key_prefix("sku-images", "wn-mo400-s-un", "ab12")
        'sku-images/WN/ab12'
    """
    return f"{namespace.strip('/')}/{brand_prefix(sku_code)}/{content_hash}"
