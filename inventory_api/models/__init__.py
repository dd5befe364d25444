"""SQLAlchemy models."""

from inventory_api.database import Base
from inventory_api.models.user import User
from inventory_api.models.sku import Sku
from inventory_api.models.sku_image import SkuImage

__all__ = [
    "Base",
    "User",
    "Sku",
    "SkuImage",
]
