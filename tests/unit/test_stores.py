"""Tests for the storage adapters that need no external service.

Tests cover:
- ``make_blob_key`` naming rules.
- ``LocalBlobStore`` file handling, annotations and path safety.
- ``JsonMetadataStore`` persistence, ordering, counting and handling of
  corrupt files and hand-edited entries.
- ``MemoryMetadataStore`` id validation and fault injection.
- The store factory.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from artgallery.core.config import GalleryConfig
from artgallery.stores.base import make_blob_key
from artgallery.stores.factory import build_blob_store, build_metadata_store
from artgallery.stores.json_file import JsonMetadataStore
from artgallery.stores.local import LocalBlobStore
from artgallery.stores.memory import MemoryBlobStore, MemoryMetadataStore
from artgallery.stores.mongo import MongoMetadataStore
from artgallery.stores.s3 import S3BlobStore

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _record(section: str = "paintings", offset_days: int = 0, **overrides) -> dict:
    record = {
        "section": section,
        "blob_key": f"key-{section}-{offset_days}.jpg",
        "original_name": "sunset.jpg",
        "title": "Sunset",
        "description": "",
        "materials": "",
        "dimensions": "",
        "upload_date": T0 + timedelta(days=offset_days),
    }
    record.update(overrides)
    return record


# ---------------------------------------------------------------------------
# Blob keys.
# ---------------------------------------------------------------------------


class TestMakeBlobKey:
    """Test blob key generation."""

    def test_keeps_stem_and_extension(self):
        key = make_blob_key("Sunset.JPG", "image/jpeg")
        assert "-Sunset-" in key
        assert key.endswith(".jpg")

    def test_strips_unsafe_characters(self):
        key = make_blob_key("my photo (1)?.png", "image/png")
        assert "-my_photo_1-" in key
        assert " " not in key and "(" not in key and "?" not in key

    def test_extension_from_content_type(self):
        assert make_blob_key("scan", "image/png").endswith(".png")

    def test_empty_name_gets_placeholder(self):
        assert "-image-" in make_blob_key("", "image/png")

    def test_keys_are_unique(self):
        keys = {make_blob_key("a.jpg", "image/jpeg") for _ in range(50)}
        assert len(keys) == 50


# ---------------------------------------------------------------------------
# Local blob store.
# ---------------------------------------------------------------------------


class TestLocalBlobStore:
    """Test LocalBlobStore against a temporary directory."""

    @pytest.fixture
    def store(self, temp_dir: Path) -> LocalBlobStore:
        store = LocalBlobStore(temp_dir / "uploads", public_path="/static/uploads/")
        store.open()
        return store

    def test_open_creates_root_and_pings(self, store):
        assert store.root.is_dir()
        assert store.ping() is True

    def test_put_writes_file(self, store):
        stored = store.put(b"pixels", "image/png", original_name="river.png")
        assert (store.root / stored.key).read_bytes() == b"pixels"
        assert stored.url == f"/static/uploads/{stored.key}"
        assert store.exists(stored.key)

    def test_no_partial_files_left(self, store):
        store.put(b"pixels", "image/png", original_name="river.png")
        assert not list(store.root.glob("*.part"))

    def test_annotations_sidecar(self, store):
        stored = store.put(b"p", "image/png", original_name="a.png", annotations={"section": "x"})
        sidecar = store.root / f".{stored.key}.json"
        assert json.loads(sidecar.read_text()) == {"section": "x"}

    def test_delete(self, store):
        stored = store.put(b"p", "image/png", original_name="a.png", annotations={"section": "x"})
        assert store.delete(stored.key) is True
        assert not store.exists(stored.key)
        assert not list(store.root.iterdir())
        assert store.delete(stored.key) is False

    def test_rejects_path_traversal(self, store):
        with pytest.raises(ValueError):
            store.exists("../outside.jpg")


# ---------------------------------------------------------------------------
# JSON metadata store.
# ---------------------------------------------------------------------------


class TestJsonMetadataStore:
    """Test JsonMetadataStore against a temporary gallery.json."""

    @pytest.fixture
    def store(self, temp_dir: Path) -> JsonMetadataStore:
        store = JsonMetadataStore(temp_dir / "data" / "gallery.json")
        store.open()
        return store

    def test_missing_file_is_empty(self, store):
        assert store.find_by_section("paintings") == []
        assert store.count_grouped_by("section") == {}

    def test_create_and_find(self, store):
        item_id = store.create(_record())
        found = store.find_by_id(item_id)
        assert found["id"] == item_id
        assert found["upload_date"] == T0
        assert store.is_valid_id(item_id)

    def test_persists_across_instances(self, store):
        item_id = store.create(_record())
        reopened = JsonMetadataStore(store.path)
        reopened.open()
        assert reopened.find_by_id(item_id)["title"] == "Sunset"

    def test_dates_stored_as_iso_strings(self, store):
        store.create(_record())
        raw = json.loads(store.path.read_text())
        assert raw[0]["upload_date"] == T0.isoformat()

    def test_section_listing_newest_first(self, store):
        old = store.create(_record(offset_days=0))
        new = store.create(_record(offset_days=2))
        mid = store.create(_record(offset_days=1))
        store.create(_record(section="drawings"))
        assert [r["id"] for r in store.find_by_section("paintings")] == [new, mid, old]

    def test_find_one(self, store):
        item_id = store.create(_record(blob_key="abc.jpg"))
        assert store.find_one("paintings", "blob_key", "abc.jpg")["id"] == item_id
        assert store.find_one("drawings", "blob_key", "abc.jpg") is None

    def test_update(self, store):
        item_id = store.create(_record())
        updated = store.update(item_id, {"title": "Dusk"})
        assert updated["title"] == "Dusk"
        assert store.find_by_id(item_id)["title"] == "Dusk"

    def test_update_unknown(self, store):
        assert store.update("0" * 32, {"title": "x"}) is None

    def test_delete(self, store):
        item_id = store.create(_record())
        assert store.delete(item_id) is True
        assert store.find_by_id(item_id) is None
        assert store.delete(item_id) is False

    def test_counts(self, store):
        store.create(_record(offset_days=0))
        store.create(_record(offset_days=10))
        store.create(_record(section="drawings", offset_days=10))
        assert store.count_grouped_by("section") == {"paintings": 2, "drawings": 1}
        assert store.count_where("upload_date", T0 + timedelta(days=5)) == 2

    def test_invalid_ids(self, store):
        assert not store.is_valid_id("abc")
        assert not store.is_valid_id("")

    def test_corrupt_file_raises(self, store):
        store.path.write_text("{not json")
        with pytest.raises(ValueError):
            store.open()

    def test_entry_without_upload_date_is_skipped(self, store):
        item_id = store.create(_record())
        raw = json.loads(store.path.read_text())
        raw.append({"id": "b" * 32, "section": "paintings", "blob_key": "x.jpg"})
        raw.append({"id": "c" * 32, "section": "paintings", "upload_date": "yesterday"})
        store.path.write_text(json.dumps(raw))

        assert [r["id"] for r in store.find_by_section("paintings")] == [item_id]
        assert store.count_grouped_by("section") == {"paintings": 1}

    def test_naive_upload_date_read_as_utc(self, store):
        aware = store.create(_record(offset_days=0))
        raw = json.loads(store.path.read_text())
        raw.append({**raw[0], "id": "d" * 32, "upload_date": "2025-01-03T00:00:00"})
        store.path.write_text(json.dumps(raw))

        records = store.find_by_section("paintings")
        assert [r["id"] for r in records] == ["d" * 32, aware]
        assert records[0]["upload_date"] == T0 + timedelta(days=2)
        assert store.count_where("upload_date", T0 + timedelta(days=1)) == 1

    def test_pixel_size_round_trips(self, store):
        item_id = store.create(_record(width=640, height=480))
        found = store.find_by_id(item_id)
        assert (found["width"], found["height"]) == (640, 480)

    def test_non_list_file_raises(self, store):
        store.path.write_text('{"id": "x"}')
        with pytest.raises(ValueError):
            store.find_by_section("paintings")


# ---------------------------------------------------------------------------
# Memory stores.
# ---------------------------------------------------------------------------


class TestMemoryStores:
    """Test behaviour specific to the in-memory fakes."""

    def test_records_are_copied(self):
        store = MemoryMetadataStore()
        item_id = store.create(_record())
        store.find_by_id(item_id)["title"] = "mutated"
        assert store.find_by_id(item_id)["title"] == "Sunset"

    def test_fault_injection(self):
        store = MemoryBlobStore()
        store.fail_on.add("put")
        with pytest.raises(RuntimeError):
            store.put(b"x", "image/png")

    def test_uuid_ids(self):
        store = MemoryMetadataStore()
        assert store.is_valid_id(store.create(_record()))
        assert not store.is_valid_id("ABC")


# ---------------------------------------------------------------------------
# Factory.
# ---------------------------------------------------------------------------


class TestFactory:
    """Test build_blob_store / build_metadata_store."""

    def test_local_and_json(self, temp_dir: Path):
        cfg = GalleryConfig(
            _env_file=None,
            blob_backend="local",
            metadata_backend="json",
            data_dir=temp_dir / "data",
            upload_dir=temp_dir / "uploads",
        )
        blob = build_blob_store(cfg)
        meta = build_metadata_store(cfg)
        assert isinstance(blob, LocalBlobStore)
        assert blob.root == temp_dir / "uploads"
        assert isinstance(meta, JsonMetadataStore)
        assert meta.path == temp_dir / "data" / "gallery.json"

    def test_s3_and_mongo(self):
        cfg = GalleryConfig(
            _env_file=None,
            blob_backend="s3",
            metadata_backend="mongo",
            s3_bucket="gallery",
            s3_public_base_url="https://img.example.org/",
        )
        blob = build_blob_store(cfg)
        meta = build_metadata_store(cfg)
        assert isinstance(blob, S3BlobStore)
        assert blob.public_base_url == "https://img.example.org"
        assert isinstance(meta, MongoMetadataStore)
        # Connections are only made in open().
        assert blob.client is None
        assert meta.client is None

    def test_memory(self, test_config):
        assert isinstance(build_blob_store(test_config), MemoryBlobStore)
        assert isinstance(build_metadata_store(test_config), MemoryMetadataStore)
