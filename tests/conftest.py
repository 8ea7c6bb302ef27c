"""Shared pytest fixtures for Art Gallery tests."""

import os

# Keep the import-time global config from creating data/ and uploads/ in the
# working directory.
os.environ.setdefault("ARTGALLERY_BLOB_BACKEND", "memory")
os.environ.setdefault("ARTGALLERY_METADATA_BACKEND", "memory")

import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from io import BytesIO
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from artgallery.api.main import create_app
from artgallery.core.asset_manager import AssetManager
from artgallery.core.config import GalleryConfig
from artgallery.core.models import BlobUpload, ItemFields
from artgallery.stores.memory import MemoryBlobStore, MemoryMetadataStore


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 3)) -> bytes:
    """Encode a small solid-colour image with Pillow."""
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 120, 40)).save(buffer, fmt)
    return buffer.getvalue()


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> GalleryConfig:
    """Create a test configuration using temporary directories and memory stores.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        GalleryConfig instance for testing
    """
    return GalleryConfig(
        _env_file=None,
        blob_backend="memory",
        metadata_backend="memory",
        data_dir=temp_dir / "data",
        upload_dir=temp_dir / "uploads",
        max_upload_bytes=1024,
        expose_error_details=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at a fixed instant."""
    return FakeClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def metadata_store() -> MemoryMetadataStore:
    return MemoryMetadataStore()


@pytest.fixture
def manager(blob_store, metadata_store, clock) -> AssetManager:
    """AssetManager over in-memory stores with a 1 KiB upload limit."""
    return AssetManager(blob_store, metadata_store, max_upload_bytes=1024, clock=clock)


@pytest.fixture
def make_upload():
    """Factory for BlobUpload payloads.

    Without ``data`` the payload is a real PNG of ``size`` pixels.
    """

    def _make(
        name: str = "sunset.jpg",
        data: bytes | None = None,
        content_type: str = "image/jpeg",
        size: tuple[int, int] = (4, 3),
    ):
        if data is None:
            data = make_image_bytes(size=size)
        return BlobUpload(data=data, content_type=content_type, original_name=name)

    return _make


@pytest.fixture
def painting(manager, make_upload):
    """A stored painting with every field populated."""
    return manager.ingest(
        make_upload("sunset.jpg"),
        ItemFields(
            section="paintings",
            title="Sunset",
            description="Evening over the river",
            materials="oil on canvas",
            dimensions="50x70 cm",
        ),
    )


@pytest.fixture
def test_client(test_config, blob_store, metadata_store) -> Generator[TestClient, None, None]:
    """TestClient over an app wired to the in-memory stores.

    Entering the client runs the lifespan, which opens the stores.
    """
    app = create_app(test_config, blob_store=blob_store, metadata_store=metadata_store)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def image_bytes():
    """Factory for encoded images: ``image_bytes("GIF", (8, 8))``."""
    return make_image_bytes
