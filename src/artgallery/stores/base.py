"""Abstract collaborator interfaces for blob and metadata storage.

The Asset Manager only ever talks to these two interfaces. Concrete
implementations live beside this module:

========================  ==========================================
Implementation            Backing service
========================  ==========================================
``memory.MemoryBlobStore``      process memory
``local.LocalBlobStore``        local filesystem
``s3.S3BlobStore``              S3-compatible bucket (boto3)
``memory.MemoryMetadataStore``  process memory
``json_file.JsonMetadataStore`` single ``gallery.json`` file
``mongo.MongoMetadataStore``    MongoDB collection (pymongo)
========================  ==========================================

Stores own their own timeout policy and raise whatever their driver raises;
the Asset Manager wraps those errors in :class:`~artgallery.core.errors.StoreFailure`.
"""

from __future__ import annotations

import mimetypes
import re
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from artgallery.core.slugs import filename_stem

_UNSAFE_KEY_CHARS = re.compile(r"[^\w.-]")


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful ``BlobStore.put``."""

    key: str
    url: str


def make_blob_key(original_name: str, content_type: str) -> str:
    """Build a unique, filesystem- and URL-safe key for a new blob.

    Format: ``{epoch_ms}-{safe_stem}-{uuid6}{ext}``

    Args:
        original_name: Filename supplied by the uploader.
        content_type: MIME type, used to pick an extension when the name has none.

    Returns:
        Blob key string.
    """
    stem = re.sub(r"\s+", "_", filename_stem(original_name))
    stem = _UNSAFE_KEY_CHARS.sub("", stem)[:60] or "image"
    suffix = original_name.rsplit(".", 1)[-1].lower() if "." in original_name else ""
    ext = f".{suffix}" if suffix.isalnum() else (mimetypes.guess_extension(content_type) or "")
    return f"{int(time.time() * 1000)}-{stem}-{uuid.uuid4().hex[:6]}{ext}"


class BlobStore(ABC):
    """Durable storage for binary payloads addressed by an opaque key."""

    #: Short backend name reported by the health endpoint.
    name = "blob"

    def open(self) -> None:
        """Acquire connections or directories. Called once at startup."""

    def close(self) -> None:
        """Release anything acquired in :meth:`open`."""

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the backing service is reachable."""

    @abstractmethod
    def put(
        self,
        data: bytes,
        content_type: str,
        *,
        original_name: str = "",
        annotations: dict[str, str] | None = None,
    ) -> StoredBlob:
        """Store *data* under a freshly generated key.

        Args:
            data: Binary payload.
            content_type: MIME type hint.
            original_name: Uploader filename, used to build a readable key.
            annotations: Opaque key/value context stored with the blob
                (object tags, metadata) where the backend supports it.

        Returns:
            The new key and a fetchable URL.
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a blob.

        Returns:
            True if the blob was removed, False if it did not exist.
        """

    @abstractmethod
    def url_for(self, key: str) -> str:
        """Return a fetchable URL for *key*. Must not perform writes."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if a blob is stored under *key*."""


class MetadataStore(ABC):
    """Durable storage for gallery records keyed by an identifier.

    Records are plain dicts in the shape produced by
    :meth:`GalleryItem.to_record <artgallery.core.models.GalleryItem.to_record>`.
    Lookups return them with an extra ``id`` key.
    """

    name = "metadata"

    def open(self) -> None:
        """Acquire connections. Called once at startup."""

    def close(self) -> None:
        """Release anything acquired in :meth:`open`."""

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the backing service is reachable."""

    @abstractmethod
    def is_valid_id(self, item_id: str) -> bool:
        """Return True if *item_id* is syntactically valid for this store."""

    @abstractmethod
    def create(self, record: dict) -> str:
        """Persist a new record and return its assigned identifier."""

    @abstractmethod
    def find_by_id(self, item_id: str) -> dict | None:
        """Return the record for *item_id*, or None."""

    @abstractmethod
    def find_by_section(self, section: str) -> list[dict]:
        """Return every record in *section*, newest ``upload_date`` first."""

    @abstractmethod
    def find_one(self, section: str, field: str, value: str) -> dict | None:
        """Return the first record in *section* whose *field* equals *value*."""

    @abstractmethod
    def update(self, item_id: str, changes: dict) -> dict | None:
        """Apply *changes* atomically to one record.

        Returns:
            The updated record, or None if *item_id* does not exist.
        """

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""

    @abstractmethod
    def count_grouped_by(self, field: str) -> dict[str, int]:
        """Count records per distinct value of *field*. Zero counts are omitted."""

    @abstractmethod
    def count_where(self, field: str, since: datetime) -> int:
        """Count records whose datetime *field* is at or after *since*."""
