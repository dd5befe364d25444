"""Storage drivers for SKU image variants."""

from inventory_api.storage.base import BaseStorageDriver, StorageError
from inventory_api.storage.factory import get_storage_driver

__all__ = ["BaseStorageDriver", "StorageError", "get_storage_driver"]
