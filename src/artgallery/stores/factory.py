"""Build the configured store implementations."""

from __future__ import annotations

from artgallery.core.config import GalleryConfig
from artgallery.stores.base import BlobStore, MetadataStore


def build_blob_store(cfg: GalleryConfig) -> BlobStore:
    """Instantiate the blob store selected by ``cfg.blob_backend``.

    Driver modules are imported lazily so a deployment only needs the
    libraries for the backends it actually uses.
    """
    if cfg.blob_backend == "local":
        from artgallery.stores.local import LocalBlobStore

        return LocalBlobStore(cfg.upload_dir, public_path=cfg.public_upload_path)
    if cfg.blob_backend == "s3":
        from artgallery.stores.s3 import S3BlobStore

        return S3BlobStore(
            cfg.s3_bucket,
            prefix=cfg.s3_prefix,
            public_base_url=cfg.s3_public_base_url,
            presign_expiry=cfg.s3_presign_expiry_seconds,
            endpoint_url=cfg.s3_endpoint_url,
            region=cfg.s3_region,
            access_key_id=cfg.s3_access_key_id,
            secret_access_key=cfg.s3_secret_access_key,
        )
    from artgallery.stores.memory import MemoryBlobStore

    return MemoryBlobStore()


def build_metadata_store(cfg: GalleryConfig) -> MetadataStore:
    """Instantiate the metadata store selected by ``cfg.metadata_backend``."""
    if cfg.metadata_backend == "json":
        from artgallery.stores.json_file import JsonMetadataStore

        return JsonMetadataStore(cfg.gallery_db)
    if cfg.metadata_backend == "mongo":
        from artgallery.stores.mongo import MongoMetadataStore

        return MongoMetadataStore(
            cfg.mongodb_uri,
            cfg.mongodb_database,
            cfg.mongodb_collection,
            timeout_ms=cfg.mongodb_timeout_ms,
        )
    from artgallery.stores.memory import MemoryMetadataStore

    return MemoryMetadataStore()
