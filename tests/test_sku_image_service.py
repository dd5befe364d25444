"""SKU image workflow and batch tests."""

import asyncio
import dataclasses
import uuid

import pytest
from sqlalchemy import func, select

from inventory_api.database import run_in_transaction
from inventory_api.errors import NotFoundError, ServiceError, ValidationError
from inventory_api.models import SkuImage
from inventory_api.schemas.sku_image import ImageDescriptor, SkuImageSet
from inventory_api.services.image_pipeline import ImagePipeline, ImageVariant
from inventory_api.services.sku_image_repository import get_sku_images
from inventory_api.services.sku_image_service import (
    image_group_id,
    save_bulk_sku_images,
    save_sku_images,
)
from tests.conftest import FakeObjectStore, create_sku


class StaticPipeline:
    """Pipeline double returning a fixed variant list."""

    def __init__(self, variants=None, error=None):
        self.variants = variants or []
        self.error = error
        self.calls = []

    async def process(self, images, sku_code):
        self.calls.append(sku_code)
        if self.error:
            raise self.error
        return list(self.variants)


def variant(url, image_type="main", alt_text=None, content_hash="h1"):
    return ImageVariant(
        image_url=url,
        image_type=image_type,
        display_order=0,
        is_primary=image_type == "main",
        content_hash=content_hash,
        file_format="webp",
        alt_text=alt_text,
    )


def save(session_factory, images, sku_id, sku_code, user_id, config, pipeline):
    return asyncio.run(
        run_in_transaction(
            session_factory,
            lambda session: save_sku_images(
                session, images, sku_id, sku_code, user_id, config, pipeline=pipeline
            ),
        )
    )


def count_images(session_factory, sku_id=None):
    async def run():
        async with session_factory() as session:
            stmt = select(func.count()).select_from(SkuImage)
            if sku_id is not None:
                stmt = stmt.where(SkuImage.sku_id == sku_id)
            return (await session.execute(stmt)).scalar_one()

    return asyncio.run(run())


def list_images(session_factory, sku_id):
    async def run():
        async with session_factory() as session:
            return await get_sku_images(session, sku_id)

    return asyncio.run(run())


IMAGES = [ImageDescriptor(source_locator="http://x/a.jpg")]


def test_missing_sku_id_is_rejected(session_factory, upload_config):
    with pytest.raises(ValidationError):
        save(session_factory, IMAGES, None, "S1", None, upload_config, StaticPipeline())


def test_empty_image_list_returns_nothing(session_factory, upload_config):
    pipeline = StaticPipeline()

    assert save(session_factory, [], uuid.uuid4(), "S1", None, upload_config, pipeline) == []
    assert pipeline.calls == []


def test_unknown_sku_is_not_found(session_factory, upload_config):
    with pytest.raises(NotFoundError):
        save(session_factory, IMAGES, uuid.uuid4(), "S1", None, upload_config, StaticPipeline())


def test_pipeline_receives_stored_sku_code(session_factory, upload_config):
    sku_id = create_sku(session_factory, "WN-MO400")
    pipeline = StaticPipeline([variant("/uploads/a/main.webp")])

    save(session_factory, IMAGES, sku_id, "wn-typo", None, upload_config, pipeline)

    assert pipeline.calls == ["WN-MO400"]


def test_no_variants_persists_nothing(session_factory, upload_config):
    sku_id = create_sku(session_factory, "S1")

    assert save(session_factory, IMAGES, sku_id, "S1", None, upload_config, StaticPipeline()) == []
    assert count_images(session_factory) == 0


def test_existing_images_block_new_upload(session_factory, upload_config):
    sku_id = create_sku(session_factory, "S1")
    save(session_factory, IMAGES, sku_id, "S1", None, upload_config, StaticPipeline([variant("/u/1.webp")]))

    with pytest.raises(ValidationError, match="replace"):
        save(
            session_factory,
            IMAGES,
            sku_id,
            "S1",
            None,
            upload_config,
            StaticPipeline([variant("/u/2.webp")]),
        )
    assert count_images(session_factory, sku_id) == 1


def test_unexpected_error_is_wrapped(session_factory, upload_config):
    sku_id = create_sku(session_factory, "S1")
    cause = RuntimeError("disk on fire")

    with pytest.raises(ServiceError) as exc_info:
        save(session_factory, IMAGES, sku_id, "S1", None, upload_config, StaticPipeline(error=cause))

    assert exc_info.value.__cause__ is cause


def test_duplicate_urls_collapse_with_latest_metadata(session_factory, upload_config):
    sku_id = create_sku(session_factory, "S1")
    pipeline = StaticPipeline(
        [
            variant("/u/main.webp", alt_text="first"),
            variant("/u/thumb.webp", image_type="thumbnail"),
            variant("/u/main.webp", alt_text="second"),
        ]
    )

    records = save(session_factory, IMAGES, sku_id, "S1", None, upload_config, pipeline)

    assert [(r.image_url, r.alt_text, r.display_order) for r in records] == [
        ("/u/main.webp", "second", 0),
        ("/u/thumb.webp", None, 1),
    ]
    assert count_images(session_factory, sku_id) == 2


def test_only_first_main_is_primary(session_factory, upload_config):
    sku_id = create_sku(session_factory, "S1")
    pipeline = StaticPipeline(
        [
            variant("/u/1/main.webp", content_hash="h1"),
            variant("/u/1/thumb.webp", image_type="thumbnail", content_hash="h1"),
            variant("/u/2/main.webp", content_hash="h2"),
            variant("/u/2/thumb.webp", image_type="thumbnail", content_hash="h2"),
        ]
    )

    records = save(session_factory, IMAGES, sku_id, "S1", None, upload_config, pipeline)

    assert [r.is_primary for r in records] == [True, False, False, False]
    assert [r.display_order for r in records] == [0, 1, 2, 3]
    assert records[0].group_id == records[1].group_id == image_group_id(sku_id, "h1")
    assert records[2].group_id == image_group_id(sku_id, "h2")


def test_reads_return_primary_first(session_factory, upload_config, user_id):
    sku_id = create_sku(session_factory, "S1")
    pipeline = StaticPipeline(
        [
            variant("/u/thumb.webp", image_type="thumbnail"),
            variant("/u/zoom.jpg", image_type="zoom"),
            variant("/u/main.webp"),
        ]
    )
    save(session_factory, IMAGES, sku_id, "S1", user_id, upload_config, pipeline)

    rows = list_images(session_factory, sku_id)

    assert [(r["image_url"], r["display_order"]) for r in rows] == [
        ("/u/main.webp", 2),
        ("/u/thumb.webp", 0),
        ("/u/zoom.jpg", 1),
    ]
    assert rows[0]["is_primary"] is True
    assert {r["uploaded_by_name"] for r in rows} == {"Ana Lima"}


def test_single_remote_image_end_to_end(session_factory, upload_config, resolver, user_id):
    sku_id = create_sku(session_factory, "S1")
    pipeline = ImagePipeline(upload_config, resolver=resolver)

    records = save(session_factory, IMAGES, sku_id, "S1", user_id, upload_config, pipeline)

    assert [(r.image_type, r.is_primary, r.display_order) for r in records] == [
        ("main", True, 0),
        ("thumbnail", False, 1),
        ("zoom", False, 2),
    ]
    assert len({r.group_id for r in records}) == 1
    assert all(r.uploaded_by == user_id for r in records)
    assert all(r.sku_id == sku_id for r in records)


def test_bulk_empty_input(session_factory, upload_config):
    assert asyncio.run(save_bulk_sku_images([], None, upload_config, session_factory)) == []


def test_bulk_partial_failure(session_factory, upload_config, resolver):
    good_a = create_sku(session_factory, "AA-1")
    bad = create_sku(session_factory, "BB-1")
    good_b = create_sku(session_factory, "CC-1")
    entries = [
        SkuImageSet(sku_id=good_a, sku_code="AA-1", images=[ImageDescriptor(source_locator="http://x/a.jpg")]),
        SkuImageSet(sku_id=bad, sku_code="BB-1", images=[ImageDescriptor(source_locator="http://x/404.jpg")]),
        SkuImageSet(sku_id=good_b, sku_code="CC-1", images=[ImageDescriptor(source_locator="http://x/b.png")]),
    ]
    pipeline = ImagePipeline(upload_config, resolver=resolver)

    results = asyncio.run(
        save_bulk_sku_images(entries, None, upload_config, session_factory, pipeline=pipeline)
    )

    assert [r.sku_id for r in results] == [good_a, bad, good_b]
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error
    assert results[1].count == 0 and results[1].images == []
    assert count_images(session_factory, good_a) == 3
    assert count_images(session_factory, good_b) == 3
    assert count_images(session_factory, bad) == 0


def test_bulk_failure_does_not_cancel_siblings(session_factory, upload_config, resolver):
    known = create_sku(session_factory, "AA-1")
    entries = [
        SkuImageSet(sku_id=uuid.uuid4(), sku_code="ZZ-1", images=IMAGES),
        SkuImageSet(sku_id=known, sku_code="AA-1", images=IMAGES),
    ]
    pipeline = ImagePipeline(upload_config, resolver=resolver)

    results = asyncio.run(
        save_bulk_sku_images(entries, None, upload_config, session_factory, pipeline=pipeline)
    )

    assert results[0].success is False
    assert "SKU not found" in results[0].error
    assert results[1].success is True
    assert results[1].count == 3


def test_bulk_production_upload_is_idempotent(session_factory, production_config, resolver):
    config = dataclasses.replace(production_config, batch_concurrency=1)
    store = FakeObjectStore()
    first = create_sku(session_factory, "AB-1")
    second = create_sku(session_factory, "AB-2")
    entries = [
        SkuImageSet(sku_id=first, sku_code="AB-1", images=IMAGES),
        SkuImageSet(sku_id=second, sku_code="AB-2", images=IMAGES),
    ]
    pipeline = ImagePipeline(config, storage=store, resolver=resolver)

    results = asyncio.run(save_bulk_sku_images(entries, None, config, session_factory, pipeline=pipeline))

    assert [r.success for r in results] == [True, True]
    assert len(store.uploads) == 3
    assert results[0].images[0].image_url == results[1].images[0].image_url
    assert results[0].images[1].image_url == results[1].images[1].image_url
    assert results[1].count == 2
