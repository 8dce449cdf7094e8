"""Shared fixtures for render studio tests."""

import io

import pytest
from PIL import Image

from core.render import Artifact, ImageUpload, Settings, StyleReference


def make_png(color: str = "white", size: tuple = (8, 8)) -> bytes:
    """Encode a small solid-color PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_jpeg(color: str = "white", size: tuple = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()


@pytest.fixture
def plan_upload(png_bytes):
    """A floor plan upload."""
    return ImageUpload(filename="plan.png", data=png_bytes, mime_type="image/png", preview_url="blob:plan")


@pytest.fixture
def style_refs(jpeg_bytes):
    """Two style references, one without an explicit weight."""
    return [
        StyleReference(image_bytes=jpeg_bytes, mime_type="image/jpeg", weight=0.7, filename="oak.jpg"),
        StyleReference(image_bytes=jpeg_bytes, mime_type="image/jpeg", filename="marble.jpg"),
    ]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def artifact_factory():
    """Create distinct image artifacts."""

    def factory(color: str = "white") -> Artifact:
        return Artifact(mime_type="image/png", data=make_png(color))

    return factory
