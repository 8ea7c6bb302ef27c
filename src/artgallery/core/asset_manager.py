"""Asset lifecycle orchestration across the blob and metadata stores.

The :class:`AssetManager` is the only writer of gallery records. It keeps an
uploaded binary and its metadata record consistent through every operation
without a distributed transaction; instead each two-step sequence is ordered
so that a failure at any step leaves either nothing or a recoverable state:

=========  =====================================  ===============================
Operation  Order                                  On failure of the second step
=========  =====================================  ===============================
ingest     put blob, then create record           delete the new blob, re-raise
update     put new blob, update record, delete    delete the new blob, re-raise
           old blob
delete     delete record, then delete blob        raise PartialFailure (orphan)
=========  =====================================  ===============================

Compensation failures are logged and never replace the original error.
Nothing is retried here; retry policy belongs to callers and store adapters.

The manager holds no per-request state and no locks. Two requests racing on
the same identifier rely on the metadata store's single-record atomicity.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from artgallery.core.config import DEFAULT_MAX_UPLOAD_BYTES
from artgallery.core.errors import InvalidInput, NotFound, PartialFailure, StoreFailure
from artgallery.core.images import (
    DEFAULT_ALLOWED_FORMATS,
    ImageInfo,
    inspect_image,
    normalise_format,
)
from artgallery.core.models import (
    DEFAULT_SECTION,
    PAINTINGS_SECTION,
    BlobUpload,
    DeleteResult,
    GalleryItem,
    GalleryStats,
    ItemFields,
)
from artgallery.core.slugs import slug_for
from artgallery.stores.base import BlobStore, MetadataStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _store_call(store: str, operation: str) -> Iterator[None]:
    """Translate any driver error raised inside the block into StoreFailure."""
    try:
        yield
    except StoreFailure:
        raise
    except Exception as ex:
        logger.error(f"{store} store {operation} failed: {ex}")
        raise StoreFailure(store, operation, str(ex)) from ex


class AssetManager:
    """Ingest, read, update and delete gallery items.

    Args:
        blob_store: Where image binaries live.
        metadata_store: Where item records live.
        max_upload_bytes: Largest accepted payload.
        allowed_formats: Image formats accepted on upload (``jpeg``, ``png``...),
            matched against the format Pillow detects in the bytes.
        stats_window_days: Trailing windows reported by :meth:`stats`.
        clock: Returns the current UTC time (tests inject a fixed clock).
    """

    def __init__(
        self,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        allowed_formats: list[str] | tuple[str, ...] = DEFAULT_ALLOWED_FORMATS,
        stats_window_days: list[int] | tuple[int, ...] = (7, 30),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self.max_upload_bytes = max_upload_bytes
        self.allowed_formats = frozenset(normalise_format(name) for name in allowed_formats)
        self.stats_window_days = tuple(stats_window_days)
        self.clock = clock

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Open both stores."""
        self.metadata_store.open()
        self.blob_store.open()

    def close(self) -> None:
        """Close both stores, even if the first close fails."""
        try:
            self.blob_store.close()
        finally:
            self.metadata_store.close()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, upload: BlobUpload, fields: ItemFields) -> GalleryItem:
        """Store a new image and its metadata.

        Steps:
            1. Validate the payload (MIME type, size, and the image format
               detected from its bytes) without touching a store.
            2. Trim text fields, default the section, drop painting-only fields
               for other sections.
            3. Put the blob.
            4. Create the metadata record; if that fails, delete the blob.

        Args:
            upload: Binary payload, MIME type and uploader filename.
            fields: Descriptive text fields (all optional).

        Returns:
            The stored item, including its URL.

        Raises:
            InvalidInput: Bad MIME type, empty or oversize payload, or bytes
                that are not an image in an allowed format.
            StoreFailure: Either store failed (the blob is cleaned up if the
                metadata write was the one that failed).
        """
        info = self._validate_upload(upload)
        values = fields.trimmed().supplied()
        section = values.get("section") or DEFAULT_SECTION

        item = GalleryItem(
            id="",
            section=section,
            blob_key="",
            original_name=upload.original_name,
            upload_date=self.clock(),
            title=values.get("title", ""),
            description=values.get("description", ""),
            materials=values.get("materials", ""),
            dimensions=values.get("dimensions", ""),
            width=info.width,
            height=info.height,
        )
        item = _enforce_painting_fields(item)

        with _store_call("blob", "put"):
            stored = self.blob_store.put(
                upload.data,
                info.mime_type,
                original_name=info.storage_name(upload.original_name),
                annotations={"section": section, "original_name": upload.original_name},
            )
        item.blob_key = stored.key
        item.url = stored.url

        try:
            with _store_call("metadata", "create"):
                item.id = self.metadata_store.create(item.to_record())
        except StoreFailure:
            self._discard_blob(stored.key, reason="metadata create failed")
            raise

        logger.info(f"Ingested item {item.id} in section {section!r} as blob {stored.key}")
        return item

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def list_by_section(self, section: str) -> list[GalleryItem]:
        """Return every item in *section*, newest first. Unknown sections are empty."""
        with _store_call("metadata", "find_by_section"):
            records = self.metadata_store.find_by_section(section)
        items = [self._hydrate(record) for record in records]
        items.sort(key=lambda item: item.upload_date, reverse=True)
        return items

    def get_by_id(self, item_id: str) -> GalleryItem:
        """Return one item.

        Raises:
            InvalidInput: *item_id* is not a valid identifier for the metadata store.
            NotFound: No record has this identifier.
        """
        return self._hydrate(self._find_record(item_id))

    def find_by_slug(self, section: str, slug: str) -> GalleryItem:
        """Return the first item of *section* whose derived slug equals *slug*.

        This scans the whole section (no slug index is persisted); sections
        are curated and stay small.

        Raises:
            NotFound: No item in the section derives this slug.
        """
        for item in self.list_by_section(section):
            if slug_for(item.section, item.title, item.original_name) == slug:
                return item
        raise NotFound(f"No item with slug {slug!r} in section {section!r}")

    def find_by_blob_key(self, section: str, blob_key: str) -> GalleryItem:
        """Return the item of *section* referencing *blob_key*.

        Raises:
            NotFound: No such item.
        """
        with _store_call("metadata", "find_one"):
            record = self.metadata_store.find_one(section, "blob_key", blob_key)
        if record is None:
            raise NotFound(f"No item for file {blob_key!r} in section {section!r}")
        return self._hydrate(record)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(
        self,
        item_id: str,
        fields: ItemFields,
        new_blob: BlobUpload | None = None,
    ) -> GalleryItem:
        """Change some text fields and/or swap the image of an item.

        Only supplied fields change; an empty string is a supplied value.
        When the resulting section is not ``paintings``, materials and
        dimensions are cleared.

        With a new binary the old blob is deleted only after the record points
        at the new one, so the item always references a stored blob.

        Raises:
            InvalidInput: Nothing to change, malformed id, blank section, or a
                bad replacement payload.
            NotFound: *item_id* does not exist.
            StoreFailure: A store call failed; the original item is untouched.
        """
        changes = fields.trimmed().supplied()
        if not changes and new_blob is None:
            raise InvalidInput("No update data provided")
        if "section" in changes and not changes["section"]:
            raise InvalidInput("Section must not be empty")
        info = self._validate_upload(new_blob) if new_blob is not None else None

        current = GalleryItem.from_record(self._find_record(item_id))
        merged = _enforce_painting_fields(replace(current, **changes))
        if info is not None:
            merged.width = info.width
            merged.height = info.height
        record_changes = {
            key: value
            for key, value in merged.to_record().items()
            if value != getattr(current, key)
        }

        stored = None
        if new_blob is not None:
            with _store_call("blob", "put"):
                stored = self.blob_store.put(
                    new_blob.data,
                    info.mime_type,
                    original_name=info.storage_name(new_blob.original_name),
                    annotations={"section": merged.section, "original_name": current.original_name},
                )
            record_changes["blob_key"] = stored.key

        try:
            with _store_call("metadata", "update"):
                record = (
                    self.metadata_store.update(item_id, record_changes)
                    if record_changes
                    else self.metadata_store.find_by_id(item_id)
                )
        except StoreFailure:
            if stored is not None:
                self._discard_blob(stored.key, reason="metadata update failed")
            raise

        if record is None:
            # Deleted between our read and our write.
            if stored is not None:
                self._discard_blob(stored.key, reason="item vanished during update")
            raise NotFound(f"Item {item_id} not found")

        if stored is not None:
            self._discard_blob(current.blob_key, reason="replaced by new upload")

        logger.info(f"Updated item {item_id}: {sorted(record_changes)}")
        return self._hydrate(record)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, item_id: str) -> DeleteResult:
        """Delete an item's metadata record, then its blob.

        Raises:
            InvalidInput: Malformed id.
            NotFound: No such item; nothing is changed.
            StoreFailure: The metadata delete failed; the item is intact.
            PartialFailure: The record is gone but the blob could not be
                removed and is now orphaned.
        """
        record = self._find_record(item_id)
        blob_key = record["blob_key"]

        with _store_call("metadata", "delete"):
            removed = self.metadata_store.delete(item_id)
        if not removed:
            raise NotFound(f"Item {item_id} not found")

        try:
            blob_removed = self.blob_store.delete(blob_key)
        except Exception as ex:
            logger.error(f"Item {item_id} deleted but blob {blob_key} is orphaned: {ex}")
            raise PartialFailure(item_id, blob_key, str(ex)) from ex

        if not blob_removed:
            logger.warning(f"Blob {blob_key} for item {item_id} was already missing")
        logger.info(f"Deleted item {item_id} and blob {blob_key}")
        return DeleteResult(item_id=item_id, blob_key=blob_key, blob_removed=blob_removed)

    # ------------------------------------------------------------------
    # Statistics and health
    # ------------------------------------------------------------------

    def stats(self) -> GalleryStats:
        """Count items per section and within each trailing window.

        Sections with no items are absent from the mapping.
        """
        now = self.clock()
        with _store_call("metadata", "count"):
            sections = {
                section: count
                for section, count in self.metadata_store.count_grouped_by("section").items()
                if count > 0
            }
            windows = {
                days: self.metadata_store.count_where("upload_date", now - timedelta(days=days))
                for days in self.stats_window_days
            }
        return GalleryStats(sections=sections, total_items=sum(sections.values()), windows=windows)

    def health(self) -> dict:
        """Report reachability of both stores. Never raises."""
        checks = {}
        for label, store in (("metadata", self.metadata_store), ("blob", self.blob_store)):
            try:
                ok = bool(store.ping())
            except Exception as ex:
                logger.warning(f"{label} store health check raised: {ex}")
                ok = False
            checks[label] = {"backend": store.name, "status": "connected" if ok else "disconnected"}
        healthy = all(check["status"] == "connected" for check in checks.values())
        return {"status": "healthy" if healthy else "degraded", "stores": checks}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_upload(self, upload: BlobUpload) -> ImageInfo:
        """Check an upload and return what Pillow detected in its bytes."""
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise InvalidInput("Only image files are allowed")
        if not upload.data:
            raise InvalidInput("Uploaded file is empty")
        if len(upload.data) > self.max_upload_bytes:
            limit_mib = self.max_upload_bytes / (1024 * 1024)
            raise InvalidInput(f"File too large. Maximum file size is {limit_mib:g}MB")

        info = inspect_image(upload.data)
        if info is None:
            raise InvalidInput("Only image files are allowed: the file is not a readable image")
        if info.format not in self.allowed_formats:
            allowed = ", ".join(sorted(name.lower() for name in self.allowed_formats))
            raise InvalidInput(
                f"Unsupported image format {info.format.lower()}. Allowed formats: {allowed}"
            )
        return info

    def _find_record(self, item_id: str) -> dict:
        if not item_id or not self.metadata_store.is_valid_id(item_id):
            raise InvalidInput("Invalid ID format")
        with _store_call("metadata", "find_by_id"):
            record = self.metadata_store.find_by_id(item_id)
        if record is None:
            raise NotFound(f"Item {item_id} not found")
        return record

    def _hydrate(self, record: dict) -> GalleryItem:
        with _store_call("blob", "url_for"):
            url = self.blob_store.url_for(record["blob_key"])
        return GalleryItem.from_record(record, url=url)

    def _discard_blob(self, key: str, *, reason: str) -> None:
        """Best-effort blob removal used as a compensating action."""
        try:
            self.blob_store.delete(key)
            logger.info(f"Removed blob {key} ({reason})")
        except Exception as ex:
            logger.error(f"Could not remove blob {key} ({reason}); it is orphaned: {ex}")


def _enforce_painting_fields(item: GalleryItem) -> GalleryItem:
    if item.section != PAINTINGS_SECTION:
        item.materials = ""
        item.dimensions = ""
    return item
