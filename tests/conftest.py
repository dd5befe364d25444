"""Pytest configuration and fixtures."""

import asyncio
import dataclasses
import io
import uuid
from pathlib import Path
from typing import Dict, Optional

import httpx
import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from inventory_api.models import Base, Sku, User
from inventory_api.services.source_resolver import SourceResolver
from inventory_api.services.upload_config import ImageUploadConfig
from inventory_api.storage.base import BaseStorageDriver


def make_image_bytes(size=(1200, 900), color=(200, 40, 40), fmt="JPEG", mode="RGB") -> bytes:
    """Encode a solid-colour test image."""
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def write_image(path: Path, **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(make_image_bytes(**kwargs))
    return path


class FakeObjectStore(BaseStorageDriver):
    """In-memory object store with the S3 driver's URL scheme."""

    def __init__(self, base_url: str = "https://media-test.s3.amazonaws.com"):
        super().__init__({})
        self.base_url = base_url
        self.objects: Dict[str, bytes] = {}
        self.uploads = []

    async def exists(self, key: str) -> bool:
        return key in self.objects

    async def upload_file(self, local_path, key: str, content_type: Optional[str] = None) -> str:
        self.objects[key] = Path(local_path).read_bytes()
        self.uploads.append(key)
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def test_connection(self) -> bool:
        return True


@pytest.fixture
def remote_images():
    """URL -> body served by the mock HTTP transport; unknown URLs get 404."""
    return {
        "http://x/a.jpg": make_image_bytes(),
        "http://x/b.png": make_image_bytes(size=(300, 300), color=(0, 0, 255, 128), fmt="PNG", mode="RGBA"),
    }


@pytest.fixture
def transport(remote_images):
    def handler(request: httpx.Request) -> httpx.Response:
        body = remote_images.get(str(request.url))
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def resolver(transport, tmp_path):
    return SourceResolver(local_base_dir=tmp_path, transport=transport)


@pytest.fixture
def upload_config(tmp_path):
    """Development-mode config with every directory under tmp_path."""
    return ImageUploadConfig(
        is_production=False,
        local_public_dir=str(tmp_path / "public" / "uploads"),
        scratch_dir=str(tmp_path / "scratch"),
        upload_staging_dir=str(tmp_path / "staging"),
        local_source_base_dir=str(tmp_path),
    )


@pytest.fixture
def production_config(upload_config):
    return dataclasses.replace(upload_config, is_production=True, bucket_name="media-test")


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite database file.

    NullPool keeps connections from leaking between the event loops that
    separate ``asyncio.run`` calls create.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


def create_sku(session_factory, code: str) -> uuid.UUID:
    sku_id = uuid.uuid4()

    async def insert():
        async with session_factory() as session:
            async with session.begin():
                session.add(Sku(id=sku_id, sku=code))

    asyncio.run(insert())
    return sku_id


@pytest.fixture
def user_id(session_factory) -> uuid.UUID:
    uid = uuid.uuid4()

    async def insert():
        async with session_factory() as session:
            async with session.begin():
                session.add(User(id=uid, firstname="Ana", lastname="Lima", email="ana@example.com"))

    asyncio.run(insert())
    return uid
