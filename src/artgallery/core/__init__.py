"""Core asset lifecycle logic for the Art Gallery backend.

Modules
-------
config
    Pydantic Settings configuration (``ARTGALLERY_*`` environment variables).
errors
    InvalidInput / NotFound / StoreFailure / PartialFailure.
models
    GalleryItem and the other domain dataclasses.
slugs
    Deterministic slug derivation.
asset_manager
    Orchestrates ingestion, retrieval, update, deletion and statistics across
    the blob and metadata stores.
"""
