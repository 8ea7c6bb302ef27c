"""File-backed metadata store.

The gallery metadata lives in a single ``gallery.json`` file:

- the file holds a JSON list of record objects, each with an ``id`` key
- ``upload_date`` is stored as an ISO-8601 string and parsed on load
- list order on disk is reverse-chronological (newest first)

A missing file is an empty gallery. Single entries without an id or a
readable ``upload_date`` are skipped with a warning; naive timestamps are read
as UTC. A file that exists but cannot be parsed is an error: silently
treating it as empty would let the next write destroy every record.

Every mutation rewrites the whole file through a temporary file and an atomic
rename, under a process-local lock, so a single record's read-modify-write is
never interleaved with another.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from artgallery.stores.base import MetadataStore

logger = logging.getLogger(__name__)


class JsonMetadataStore(MetadataStore):
    """Metadata store persisting every record in one JSON file."""

    name = "json"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Fail at startup rather than on the first request if the file is corrupt.
        count = len(self._load())
        logger.info(f"JSON metadata store at {self.path} holds {count} records")

    def ping(self) -> bool:
        return self.path.parent.is_dir() and os.access(self.path.parent, os.W_OK)

    def is_valid_id(self, item_id: str) -> bool:
        try:
            return uuid.UUID(hex=item_id).hex == item_id
        except (TypeError, ValueError):
            return False

    def create(self, record: dict) -> str:
        item_id = uuid.uuid4().hex
        with self._lock:
            entries = self._load()
            entries.insert(0, {**record, "id": item_id})
            entries.sort(key=lambda e: e["upload_date"], reverse=True)
            self._save(entries)
        return item_id

    def find_by_id(self, item_id: str) -> dict | None:
        return next((e for e in self._load() if e["id"] == item_id), None)

    def find_by_section(self, section: str) -> list[dict]:
        entries = [e for e in self._load() if e.get("section") == section]
        return sorted(entries, key=lambda e: e["upload_date"], reverse=True)

    def find_one(self, section: str, field: str, value: str) -> dict | None:
        return next((e for e in self.find_by_section(section) if e.get(field) == value), None)

    def update(self, item_id: str, changes: dict) -> dict | None:
        with self._lock:
            entries = self._load()
            entry = next((e for e in entries if e["id"] == item_id), None)
            if entry is None:
                return None
            entry.update({k: v for k, v in changes.items() if k != "id"})
            self._save(entries)
            return entry

    def delete(self, item_id: str) -> bool:
        with self._lock:
            entries = self._load()
            remaining = [e for e in entries if e["id"] != item_id]
            if len(remaining) == len(entries):
                return False
            self._save(remaining)
            return True

    def count_grouped_by(self, field: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self._load():
            if field in entry:
                counts[entry[field]] = counts.get(entry[field], 0) + 1
        return counts

    def count_where(self, field: str, since: datetime) -> int:
        return sum(1 for e in self._load() if e.get(field) and e[field] >= since)

    # ------------------------------------------------------------------
    # File persistence
    # ------------------------------------------------------------------

    def _load(self) -> list[dict]:
        """Read and decode every record from disk.

        Returns:
            Records with ``upload_date`` parsed back into datetimes.

        Raises:
            ValueError: If the file exists but is not a JSON list.
        """
        with self._lock:
            if not self.path.exists():
                return []
            with open(self.path, encoding="utf-8") as handle:
                raw_entries = json.load(handle)

        if not isinstance(raw_entries, list):
            raise ValueError(f"{self.path} does not contain a JSON list")

        entries = []
        for entry in raw_entries:
            if not isinstance(entry, dict) or "id" not in entry:
                logger.warning(f"Skipping malformed gallery entry in {self.path}: {entry!r}")
                continue
            upload_date = _parse_upload_date(entry.get("upload_date"))
            if upload_date is None:
                logger.warning(
                    f"Skipping gallery entry {entry['id']!r} in {self.path}: "
                    f"bad upload_date {entry.get('upload_date')!r}"
                )
                continue
            entry["upload_date"] = upload_date
            entries.append(entry)
        return entries

    def _save(self, entries: list[dict]) -> None:
        """Persist records atomically with 2-space indentation."""
        serialisable = [
            {**entry, "upload_date": entry["upload_date"].isoformat()} for entry in entries
        ]
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(serialisable, handle, indent=2)
        tmp_path.replace(self.path)


def _parse_upload_date(value) -> datetime | None:
    """Parse a stored ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
