"""Local filesystem storage driver (development mode)."""

import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles
import aiofiles.os

from inventory_api.storage.base import BaseStorageDriver, StorageError

COPY_CHUNK_SIZE = 1024 * 1024


class LocalStorageDriver(BaseStorageDriver):
    """Stores files in a public static directory served by the web tier.

    Configuration:
        base_path: Directory that maps to ``public_base_url``
        public_base_url: URL prefix for stored files (default: /uploads)

    Example:
        >>> driver = LocalStorageDriver({"base_path": "public/uploads"})
        >>> await driver.upload_file("/tmp/a_main.webp", "sku-images/AB/f00/main.webp")
        '/uploads/sku-images/AB/f00/main.webp'
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.base_path = Path(config["base_path"])
        self.public_base_url = config.get("public_base_url", "/uploads").rstrip("/")

        # Ensure base_path is absolute for security
        if not self.base_path.is_absolute():
            self.base_path = self.base_path.resolve()

    def _validate_path(self, key: str) -> Path:
        """Validate key stays within base_path (prevent directory traversal).

        Raises:
            StorageError: If key tries to escape base_path
        """
        full_path = (self.base_path / key).resolve()

        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            raise StorageError(f"Path {key} attempts to escape base directory")

        return full_path

    async def exists(self, key: str) -> bool:
        full_path = self._validate_path(key)
        return await aiofiles.os.path.isfile(full_path)

    async def upload_file(
        self,
        local_path: Union[str, Path],
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Copy a file into the public directory.

        Returns:
            Relative public URL of the copy
        """
        full_path = self._validate_path(key)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = full_path.with_name(f".{full_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(local_path, "rb") as src, aiofiles.open(tmp_path, "wb") as dst:
                while True:
                    chunk = await src.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    await dst.write(chunk)
            os.replace(tmp_path, full_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to store {local_path} as {key}: {e}")

        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    async def test_connection(self) -> bool:
        """Test if base path exists and is writable."""
        try:
            return self.base_path.exists() and os.access(self.base_path, os.W_OK)
        except OSError:
            return False
