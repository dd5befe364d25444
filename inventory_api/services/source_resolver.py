"""Resolve image descriptors to local files."""

import logging
import re
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import aiofiles
import aiofiles.os
import httpx

from inventory_api.errors import FileSystemError, SourceFetchError, SourceNotFoundError, ValidationError
from inventory_api.schemas.sku_image import ImageDescriptor

logger = logging.getLogger(__name__)

SAFE_RE = re.compile(r"[^a-zA-Z0-9_\-\.]+")
REMOTE_SCHEMES = {"http", "https"}


def is_remote_locator(locator: str) -> bool:
    return urlparse(locator).scheme.lower() in REMOTE_SCHEMES


def _safe_filename(name: str) -> str:
    name = SAFE_RE.sub("_", name.strip())
    return name[:120] or "source"


class SourceResolver:
    """Turns an ``ImageDescriptor`` into a file on local disk.

    Remote URLs are downloaded into the caller's scratch directory; local
    paths are resolved (relative ones against ``local_base_dir``) and checked
    for existence.
    """

    def __init__(
        self,
        *,
        local_base_dir: Union[str, Path] = ".",
        timeout_s: float = 30.0,
        max_download_bytes: int = 25 * 1024 * 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.local_base_dir = Path(local_base_dir)
        self.timeout_s = float(timeout_s)
        self.max_download_bytes = int(max_download_bytes)
        self.transport = transport

    async def resolve(self, descriptor: ImageDescriptor, scratch_dir: Path, index: int = 0) -> Path:
        """Resolve one descriptor.

        Args:
            descriptor: Image to resolve
            scratch_dir: Per-SKU directory for downloaded files
            index: Position of the image in its SKU set (keeps file names unique)

        Returns:
            Path to a readable local file

        Raises:
            ValidationError: If the descriptor has no source locator
            SourceFetchError: If a remote source cannot be downloaded
            SourceNotFoundError: If a local source does not exist
        """
        locator = descriptor.source_locator
        if not locator:
            raise ValidationError("Missing image source locator")

        if is_remote_locator(locator):
            name = _safe_filename(Path(urlparse(locator).path).name)
            return await self.download(locator, scratch_dir / f"{index}_{name}")

        return await self.resolve_local(locator)

    async def download(self, url: str, dest: Path) -> Path:
        """Stream a remote file to ``dest``.

        Non-2xx responses are retryable only for server-side (5xx) statuses.
        """
        timeout = httpx.Timeout(self.timeout_s)
        try:
            async with httpx.AsyncClient(
                timeout=timeout, follow_redirects=True, transport=self.transport
            ) as client:
                async with client.stream("GET", url) as resp:
                    if not resp.is_success:
                        raise SourceFetchError(
                            f"Failed to fetch image: {url}",
                            status_code=resp.status_code,
                            retryable=resp.status_code >= 500,
                            details={"status": resp.status_code, "reason": resp.reason_phrase},
                        )

                    written = 0
                    async with aiofiles.open(dest, "wb") as f:
                        async for chunk in resp.aiter_bytes():
                            written += len(chunk)
                            if written > self.max_download_bytes:
                                raise SourceFetchError(
                                    f"Image exceeds {self.max_download_bytes} bytes: {url}",
                                    retryable=False,
                                )
                            await f.write(chunk)

        except httpx.HTTPError as e:
            raise SourceFetchError(f"Failed to fetch image: {url}: {e}", retryable=True) from e
        except OSError as e:
            raise FileSystemError(f"Failed to write downloaded image {dest}: {e}") from e

        logger.info(f"Downloaded {url} to {dest} ({written} bytes)")
        return dest

    async def resolve_local(self, locator: str) -> Path:
        path = Path(locator)
        if not path.is_absolute():
            path = self.local_base_dir / path
        path = path.resolve()

        if not await aiofiles.os.path.isfile(path):
            raise SourceNotFoundError(f"Image file not found: {locator}", details={"path": str(path)})

        return path
