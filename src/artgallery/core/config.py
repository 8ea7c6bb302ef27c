"""Configuration management for the Art Gallery backend.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the ARTGALLERY_ prefix,
allowing the storage backends to be swapped without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (ARTGALLERY_* prefix)
2. .env file in the project root
3. Default values defined in GalleryConfig

Example .env file:
    ARTGALLERY_BLOB_BACKEND=s3
    ARTGALLERY_S3_BUCKET=art-gallery
    ARTGALLERY_METADATA_BACKEND=mongo
    ARTGALLERY_MONGODB_URI=mongodb://localhost:27017

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The FastAPI application reads it when building its stores; tests construct
their own ``GalleryConfig`` pointing at temporary directories.

Storage Backends
----------------
Blob backends:
- local: image files under ``upload_dir``, served at ``public_upload_path``
- s3: any S3-compatible bucket (AWS, R2, MinIO)
- memory: process-local, for tests and demos

Metadata backends:
- json: a single ``gallery.json`` file in ``data_dir``
- mongo: a MongoDB collection
- memory: process-local, for tests and demos
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Reference upload limit: 10 MiB.
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class GalleryConfig(BaseSettings):
    """Main configuration for the Art Gallery backend.

    Values are loaded from environment variables with the ARTGALLERY_ prefix,
    with fallback to the defaults defined here. Directory fields are created
    on initialisation when the backend that needs them is selected.

    Attributes
    ----------
    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        cors_origins : list[str]
            Origins allowed by the CORS middleware
        log_level : str
            Root logging level used by ``main()``

    Upload Settings:
        max_upload_bytes : int
            Largest accepted image payload (10 MiB by default)
        allowed_image_formats : list[str]
            Formats accepted on upload (jpeg, png, gif, webp)
        stats_window_days : list[int]
            Trailing windows reported by ``GET /stats``
        expose_error_details : bool
            Include store error text in HTTP error bodies

    Storage Settings:
        blob_backend : Literal["local", "s3", "memory"]
        metadata_backend : Literal["json", "mongo", "memory"]
        data_dir, upload_dir : Path
        public_upload_path : str

    S3 / MongoDB Settings:
        See the ``s3_*`` and ``mongodb_*`` fields.

    Examples
    --------
        >>> test_config = GalleryConfig(
        ...     blob_backend="memory",
        ...     metadata_backend="memory",
        ...     _env_file=None,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ARTGALLERY_",
        case_sensitive=False,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=5001,
        description="Server port",
        ge=1024,
        le=65535,
    )
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3001",
            "http://localhost:3004",
            "http://localhost:3006",
            "https://artgalleryvake.github.io",
            "https://artgalleryvake.com",
            "https://www.artgalleryvake.com",
        ],
        description="Origins allowed to call the API from a browser",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level",
    )

    # Upload and reporting settings
    max_upload_bytes: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES,
        description="Maximum accepted upload size in bytes",
        gt=0,
    )
    allowed_image_formats: list[str] = Field(
        default=["jpeg", "png", "gif", "webp"],
        description="Image formats accepted on upload, detected from the file contents",
        min_length=1,
    )
    stats_window_days: list[int] = Field(
        default=[7, 30],
        description="Trailing windows (in days) counted by the stats endpoint",
    )
    expose_error_details: bool = Field(
        default=False,
        description="Echo store error details in HTTP responses (development only)",
    )

    # Storage backend selection
    blob_backend: Literal["local", "s3", "memory"] = Field(
        default="local",
        description="Where image binaries are stored",
    )
    metadata_backend: Literal["json", "mongo", "memory"] = Field(
        default="json",
        description="Where item metadata is stored",
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding gallery.json for the json metadata backend",
    )
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Directory holding image files for the local blob backend",
    )
    public_upload_path: str = Field(
        default="/static/uploads",
        description="URL prefix under which the local blob backend is served",
    )

    # S3-compatible cloud storage
    s3_bucket: str = Field(default="", description="Bucket name")
    s3_endpoint_url: str | None = Field(
        default=None,
        description="Custom endpoint (R2, MinIO); None for AWS",
    )
    s3_region: str = Field(default="auto", description="Bucket region")
    s3_access_key_id: str | None = Field(default=None)
    s3_secret_access_key: str | None = Field(default=None)
    s3_prefix: str = Field(
        default="art-gallery",
        description="Key prefix (folder) for uploaded images",
    )
    s3_public_base_url: str = Field(
        default="",
        description="Public base URL for objects; presigned URLs are used when empty",
    )
    s3_presign_expiry_seconds: int = Field(default=3600, gt=0)

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="artgallery")
    mongodb_collection: str = Field(default="galleryitems")
    mongodb_timeout_ms: int = Field(
        default=5000,
        description="Server selection / socket timeout in milliseconds",
        gt=0,
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the directories the backends need.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        if self.metadata_backend == "json":
            self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.blob_backend == "local":
            self.upload_dir.mkdir(parents=True, exist_ok=True)

    @property
    def gallery_db(self) -> Path:
        """Path of the JSON metadata file."""
        return self.data_dir / "gallery.json"


# Global configuration instance, loaded from ARTGALLERY_* variables and .env.
config = GalleryConfig()
