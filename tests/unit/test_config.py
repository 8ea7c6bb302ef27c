"""Tests for artgallery.core.config: configuration management.

Tests cover:
- Default values for the main configuration fields.
- Environment variable overrides via the ARTGALLERY_ prefix.
- Directory creation depending on the selected backends.
- Pydantic validation constraints.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from artgallery.core.config import DEFAULT_MAX_UPLOAD_BYTES, GalleryConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove the backend overrides conftest sets for the import-time config."""
    monkeypatch.delenv("ARTGALLERY_BLOB_BACKEND", raising=False)
    monkeypatch.delenv("ARTGALLERY_METADATA_BACKEND", raising=False)


class TestConfigDefaults:
    """Verify that GalleryConfig provides sensible defaults."""

    def test_default_backends(self, clean_env, temp_dir: Path):
        cfg = GalleryConfig(
            _env_file=None,
            data_dir=temp_dir / "data",
            upload_dir=temp_dir / "uploads",
        )
        assert cfg.blob_backend == "local"
        assert cfg.metadata_backend == "json"

    def test_default_upload_limit_is_ten_mib(self):
        assert DEFAULT_MAX_UPLOAD_BYTES == 10 * 1024 * 1024
        cfg = GalleryConfig(_env_file=None, blob_backend="memory", metadata_backend="memory")
        assert cfg.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES

    def test_default_server_settings(self, monkeypatch):
        monkeypatch.delenv("ARTGALLERY_SERVER_PORT", raising=False)
        cfg = GalleryConfig(_env_file=None, blob_backend="memory", metadata_backend="memory")
        assert cfg.server_host == "0.0.0.0"
        assert cfg.server_port == 5001

    def test_default_stats_windows(self, test_config):
        assert test_config.stats_window_days == [7, 30]

    def test_default_image_formats(self, test_config):
        assert test_config.allowed_image_formats == ["jpeg", "png", "gif", "webp"]

    def test_error_details_hidden_by_default(self):
        cfg = GalleryConfig(_env_file=None, blob_backend="memory", metadata_backend="memory")
        assert cfg.expose_error_details is False

    def test_gallery_db_path(self, test_config, temp_dir: Path):
        assert test_config.gallery_db == temp_dir / "data" / "gallery.json"


class TestConfigDirectoryCreation:
    """Verify that GalleryConfig creates the directories its backends need."""

    def test_local_and_json_create_directories(self, temp_dir: Path):
        GalleryConfig(
            _env_file=None,
            blob_backend="local",
            metadata_backend="json",
            data_dir=temp_dir / "data",
            upload_dir=temp_dir / "nested" / "uploads",
        )
        assert (temp_dir / "data").is_dir()
        assert (temp_dir / "nested" / "uploads").is_dir()

    def test_memory_backends_create_nothing(self, test_config, temp_dir: Path):
        assert not (temp_dir / "data").exists()
        assert not (temp_dir / "uploads").exists()


class TestConfigEnvironment:
    """Verify ARTGALLERY_* environment overrides."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ARTGALLERY_MAX_UPLOAD_BYTES", "2048")
        monkeypatch.setenv("ARTGALLERY_S3_BUCKET", "gallery-bucket")
        cfg = GalleryConfig(_env_file=None)
        assert cfg.max_upload_bytes == 2048
        assert cfg.s3_bucket == "gallery-bucket"

    def test_list_from_env_json(self, monkeypatch):
        monkeypatch.setenv("ARTGALLERY_STATS_WINDOW_DAYS", "[1, 7]")
        cfg = GalleryConfig(_env_file=None)
        assert cfg.stats_window_days == [1, 7]


class TestConfigValidation:
    """Verify Pydantic validation constraints."""

    def test_port_range(self):
        with pytest.raises(ValidationError):
            GalleryConfig(_env_file=None, server_port=80)

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            GalleryConfig(_env_file=None, blob_backend="ftp")

    def test_image_formats_not_empty(self):
        with pytest.raises(ValidationError):
            GalleryConfig(_env_file=None, allowed_image_formats=[])

    def test_upload_limit_positive(self):
        with pytest.raises(ValidationError):
            GalleryConfig(_env_file=None, max_upload_bytes=0)
