"""Error taxonomy for the asset lifecycle.

Every failure the Asset Manager surfaces is one of four kinds:

InvalidInput
    Bad MIME type, oversize or empty payload, malformed identifier, or an
    update carrying no changes. Always raised before any store is touched.
NotFound
    The identifier (or section/slug pair) does not resolve to an item.
StoreFailure
    A Blob Store or Metadata Store call failed. ``store`` says which one.
PartialFailure
    A multi-step operation committed only partly: the metadata record is gone
    but its blob could not be removed. Callers should reconcile, not retry.

The HTTP layer maps these to 400 / 404 / 500 / 200-with-warning.
"""

from __future__ import annotations


class GalleryError(Exception):
    """Base class for all asset lifecycle errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(GalleryError):
    """The request was rejected before any store was touched."""


class NotFound(GalleryError):
    """No item matches the given identifier."""


class StoreFailure(GalleryError):
    """A collaborator store raised while serving a request.

    Attributes:
        store: ``"blob"`` or ``"metadata"``.
        operation: Store method that failed (``"put"``, ``"create"``, ...).
        detail: Text of the underlying driver error.
    """

    def __init__(self, store: str, operation: str, detail: str = "") -> None:
        super().__init__(f"{store} store failed during {operation}")
        self.store = store
        self.operation = operation
        self.detail = detail


class PartialFailure(GalleryError):
    """Metadata was removed but the blob it referenced was not.

    Attributes:
        item_id: Identifier of the deleted metadata record.
        blob_key: Key of the orphaned blob, for external cleanup.
        detail: Text of the underlying blob store error.
    """

    def __init__(self, item_id: str, blob_key: str, detail: str = "") -> None:
        super().__init__(f"item {item_id} deleted but blob {blob_key} could not be removed")
        self.item_id = item_id
        self.blob_key = blob_key
        self.detail = detail
