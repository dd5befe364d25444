"""Variant generation tests."""

import asyncio

import pytest
from PIL import Image

from inventory_api.errors import FileSystemError
from inventory_api.services.upload_config import VariantSpec
from inventory_api.services.variant_generator import VariantGenerator, render_variant, source_extension
from tests.conftest import make_image_bytes, write_image

MAIN = VariantSpec("main", 800, 70, 5)
THUMB = VariantSpec("thumb", 200, 60, 4)


def test_render_variant_downscales_keeping_aspect(tmp_path):
    source = write_image(tmp_path / "src.jpg", size=(1600, 1000))

    dest = render_variant(source, tmp_path / "main.webp", MAIN)

    with Image.open(dest) as im:
        assert im.format == "WEBP"
        assert im.size == (800, 500)


def test_render_variant_never_upscales(tmp_path):
    source = write_image(tmp_path / "small.jpg", size=(150, 100))

    dest = render_variant(source, tmp_path / "thumb.webp", THUMB)

    with Image.open(dest) as im:
        assert im.size == (150, 100)


def test_render_variant_keeps_alpha(tmp_path):
    source = write_image(
        tmp_path / "logo.png", size=(400, 400), color=(0, 0, 255, 100), fmt="PNG", mode="RGBA"
    )

    dest = render_variant(source, tmp_path / "thumb.webp", THUMB)

    with Image.open(dest) as im:
        assert im.mode == "RGBA"
        assert im.size == (200, 200)


def test_render_variant_rejects_non_images(tmp_path):
    source = tmp_path / "notes.jpg"
    source.write_text("not an image")

    with pytest.raises(FileSystemError) as exc_info:
        render_variant(source, tmp_path / "main.webp", MAIN)
    assert isinstance(exc_info.value.__cause__, OSError)
    assert not (tmp_path / "main.webp").exists()


def test_generator_writes_both_variants(tmp_path):
    source = write_image(tmp_path / "src.jpg", size=(1200, 900))
    generator = VariantGenerator(MAIN, THUMB)

    asyncio.run(generator.generate(source, tmp_path / "0_main.webp", tmp_path / "0_thumb.webp"))

    with Image.open(tmp_path / "0_main.webp") as main, Image.open(tmp_path / "0_thumb.webp") as thumb:
        assert main.width == 800
        assert thumb.width == 200


def test_render_variant_accepts_truncated_source(tmp_path):
    data = make_image_bytes(size=(1000, 800))
    source = tmp_path / "cut.jpg"
    source.write_bytes(data[: len(data) - 200])

    dest = render_variant(source, tmp_path / "main.webp", MAIN)

    with Image.open(dest) as im:
        assert im.size == (800, 640)


@pytest.mark.parametrize(
    "fmt, mode, expected",
    [("JPEG", "RGB", ".jpg"), ("PNG", "RGBA", ".png"), ("GIF", "P", ".gif"), ("WEBP", "RGB", ".webp")],
)
def test_source_extension_follows_decoded_format(tmp_path, fmt, mode, expected):
    color = 3 if mode == "P" else (10, 20, 30, 255)[: len(mode)]
    source = tmp_path / "noext"
    source.write_bytes(make_image_bytes(size=(40, 30), color=color, fmt=fmt, mode=mode))

    assert source_extension(source) == expected


def test_source_extension_rejects_non_images(tmp_path):
    source = tmp_path / "noext"
    source.write_text("plain text")

    with pytest.raises(FileSystemError) as exc_info:
        source_extension(source)
    assert isinstance(exc_info.value.__cause__, OSError)
