"""API dependencies."""

from typing import AsyncGenerator
from uuid import UUID

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_api.config import settings
from inventory_api.database import AsyncSessionLocal
from inventory_api.services.upload_config import ImageUploadConfig


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with AsyncSessionLocal() as db:
        yield db


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that needs one transaction per unit."""
    return AsyncSessionLocal


def get_upload_config() -> ImageUploadConfig:
    """Image upload configuration built from settings."""
    return ImageUploadConfig.from_settings(settings)


def get_current_user_id(x_user_id: str = Header(None)) -> UUID:
    """Get the authenticated user's ID from header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header is required",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header must be a UUID",
        )
