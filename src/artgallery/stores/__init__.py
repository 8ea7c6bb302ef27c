"""Storage collaborators for the Art Gallery backend.

Modules
-------
base
    ``BlobStore`` and ``MetadataStore`` interfaces plus the blob key helper.
memory
    In-memory implementations of both interfaces (tests, demos).
local
    Filesystem blob store.
s3
    S3-compatible cloud blob store (boto3).
json_file
    Single-file JSON metadata store.
mongo
    MongoDB metadata store (pymongo).
factory
    Builds the stores selected in :class:`~artgallery.core.config.GalleryConfig`.
"""

from artgallery.stores.base import BlobStore, MetadataStore, StoredBlob

__all__ = ["BlobStore", "MetadataStore", "StoredBlob"]
