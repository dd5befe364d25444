"""Base storage driver interface."""

import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union


class BaseStorageDriver(ABC):
    """Base class for storage drivers.

    Drivers store files under content-addressed keys
    (``<namespace>/<brand>/<hash>/<file>``) and hand back the URL clients use
    to fetch them. Production uses an object store, development a local
    public directory with the same key layout.
    """

    def __init__(self, config: Dict[str, Any]):
        """Initialize storage driver with configuration.

        Args:
            config: Storage configuration dict with provider-specific settings
        """
        self.config = config

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether an object is already stored under ``key``.

        Raises:
            StorageError: If the check itself fails
        """
        pass

    @abstractmethod
    async def upload_file(
        self,
        local_path: Union[str, Path],
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Store a local file under ``key``.

        Args:
            local_path: File to upload
            key: Destination key
            content_type: MIME type (guessed from the key when omitted)

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If upload fails
        """
        pass

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Build the public URL for ``key`` without touching storage."""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test if storage is accessible.

        Returns:
            True if connection successful, False otherwise
        """
        pass

    @staticmethod
    def guess_content_type(key: str) -> str:
        content_type, _ = mimetypes.guess_type(key)
        return content_type or "application/octet-stream"


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class StorageConnectionError(StorageError):
    """Exception for connection errors."""

    pass
