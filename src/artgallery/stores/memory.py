"""In-memory store implementations.

Used by the test suite and by ``ARTGALLERY_*_BACKEND=memory`` for demos.
Both stores support fault injection through ``fail_on``: a set of operation
names (``"put"``, ``"delete"``, ``"create"``, ``"update"``, ...) that raise
``RuntimeError`` instead of running.
"""

from __future__ import annotations

import copy
import threading
import uuid
from collections import Counter
from datetime import datetime

from artgallery.stores.base import BlobStore, MetadataStore, StoredBlob, make_blob_key


class _FaultInjection:
    fail_on: set[str]

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"injected {operation} failure")


class MemoryBlobStore(_FaultInjection, BlobStore):
    """Blob store keeping payloads in a dict."""

    name = "memory"

    def __init__(self, base_url: str = "memory://blobs") -> None:
        self.base_url = base_url.rstrip("/")
        self.blobs: dict[str, bytes] = {}
        self.annotations: dict[str, dict[str, str]] = {}
        self.fail_on: set[str] = set()
        self.available = True

    def ping(self) -> bool:
        return self.available

    def put(self, data, content_type, *, original_name="", annotations=None) -> StoredBlob:
        self._maybe_fail("put")
        key = make_blob_key(original_name, content_type)
        self.blobs[key] = bytes(data)
        self.annotations[key] = dict(annotations or {})
        return StoredBlob(key=key, url=self.url_for(key))

    def delete(self, key: str) -> bool:
        self._maybe_fail("delete")
        self.annotations.pop(key, None)
        return self.blobs.pop(key, None) is not None

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def exists(self, key: str) -> bool:
        return key in self.blobs


class MemoryMetadataStore(_FaultInjection, MetadataStore):
    """Metadata store keeping records in a dict keyed by uuid4 hex ids."""

    name = "memory"

    def __init__(self) -> None:
        self.records: dict[str, dict] = {}
        self.fail_on: set[str] = set()
        self.available = True
        # Single-record read-modify-write must be atomic.
        self._lock = threading.Lock()

    def ping(self) -> bool:
        return self.available

    def is_valid_id(self, item_id: str) -> bool:
        return _is_uuid_hex(item_id)

    def create(self, record: dict) -> str:
        self._maybe_fail("create")
        item_id = uuid.uuid4().hex
        with self._lock:
            self.records[item_id] = copy.deepcopy(record)
        return item_id

    def find_by_id(self, item_id: str) -> dict | None:
        self._maybe_fail("find_by_id")
        record = self.records.get(item_id)
        return _with_id(item_id, record) if record is not None else None

    def find_by_section(self, section: str) -> list[dict]:
        self._maybe_fail("find_by_section")
        matches = [
            _with_id(item_id, record)
            for item_id, record in list(self.records.items())
            if record.get("section") == section
        ]
        return sorted(matches, key=lambda r: r["upload_date"], reverse=True)

    def find_one(self, section: str, field: str, value: str) -> dict | None:
        return next((r for r in self.find_by_section(section) if r.get(field) == value), None)

    def update(self, item_id: str, changes: dict) -> dict | None:
        self._maybe_fail("update")
        with self._lock:
            record = self.records.get(item_id)
            if record is None:
                return None
            record.update(copy.deepcopy(changes))
            return _with_id(item_id, record)

    def delete(self, item_id: str) -> bool:
        self._maybe_fail("delete")
        with self._lock:
            return self.records.pop(item_id, None) is not None

    def count_grouped_by(self, field: str) -> dict[str, int]:
        self._maybe_fail("count")
        return dict(Counter(r[field] for r in self.records.values() if field in r))

    def count_where(self, field: str, since: datetime) -> int:
        self._maybe_fail("count")
        return sum(1 for r in self.records.values() if r.get(field) and r[field] >= since)


def _is_uuid_hex(value: str) -> bool:
    try:
        return uuid.UUID(hex=value).hex == value
    except (TypeError, ValueError):
        return False


def _with_id(item_id: str, record: dict) -> dict:
    return {**copy.deepcopy(record), "id": item_id}
