"""API v1 router."""

from fastapi import APIRouter

from inventory_api.api.v1.endpoints import health, sku_images

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sku_images.router, tags=["sku-images"])
