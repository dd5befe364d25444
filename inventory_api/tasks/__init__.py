"""Celery tasks."""

from inventory_api.tasks.bulk_upload import process_sku_image_batch  # noqa: F401

__all__ = ["process_sku_image_batch"]
