"""Art Gallery Backend: FastAPI Application.

This module is the single entry point for the web application. It defines
the route handlers, the :func:`create_app` factory, the module-level ``app``
instance, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~artgallery.core.config.config`
  (``ARTGALLERY_*`` environment variables).
- **Storage** is two injected collaborators, a blob store and a metadata
  store, opened in the lifespan handler and closed on shutdown.
- **Lifecycle rules** (ordering, compensation, slugs) live in
  :class:`~artgallery.core.asset_manager.AssetManager`; handlers here only
  parse requests and shape responses.
- **Errors** raised by the core are mapped to JSON responses by exception
  handlers: InvalidInput → 400, NotFound → 404, StoreFailure → 500.
- **Local images** are served by FastAPI's ``StaticFiles`` when the local
  blob backend is active.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/``                         Service banner
GET       ``/health``                   Store connectivity
GET       ``/stats``                    Per-section and trailing-window counts
POST      ``/upload``                   Upload an image with metadata
GET       ``/files/{section}``          Items of a section, newest first
GET       ``/files/item/{id}``          Single item
PUT       ``/update/{id}``              Change fields and/or replace image
DELETE    ``/delete/{id}``              Delete item and image
DELETE    ``/delete``                   Legacy delete by filename + section
GET       ``/{section}/{slug}``         Item by derived slug
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    artgallery

Direct invocation::

    python -m artgallery.api.main
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from artgallery import __version__
from artgallery.api.models import GalleryItemResponse, LegacyDeleteRequest, StatsResponse
from artgallery.core.asset_manager import AssetManager
from artgallery.core.config import GalleryConfig, config
from artgallery.core.errors import InvalidInput, NotFound, PartialFailure, StoreFailure
from artgallery.core.models import BlobUpload, ItemFields
from artgallery.stores.base import BlobStore, MetadataStore
from artgallery.stores.factory import build_blob_store, build_metadata_store
from artgallery.stores.local import LocalBlobStore

logger = logging.getLogger(__name__)

# Multipart form field → ItemFields attribute.
FORM_FIELDS = {
    "section": "section",
    "title": "title",
    "description": "description",
    "materials": "materials",
    "paintingSize": "dimensions",
}

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _manager(request: Request) -> AssetManager:
    return request.app.state.asset_manager


# ---------------------------------------------------------------------------
# Request parsing helpers.
# ---------------------------------------------------------------------------


def _fields_from_form(form: FormData) -> ItemFields:
    """Collect the text fields present in a multipart form.

    Fields missing from the form stay ``None`` so an update leaves them
    untouched; fields sent empty become ``""`` and overwrite.
    """
    values = {}
    for form_name, attr in FORM_FIELDS.items():
        value = form.get(form_name)
        if isinstance(value, str):
            values[attr] = value
    return ItemFields(**values)


async def _upload_from_form(form: FormData, max_bytes: int) -> BlobUpload | None:
    """Read the ``file`` part of a form, at most ``max_bytes + 1`` bytes.

    Reading one byte past the limit is enough for the manager to reject an
    oversize payload without buffering it whole.

    Returns:
        The payload, or ``None`` when no file was sent.
    """
    upload = form.get("file")
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None
    data = await upload.read(max_bytes + 1)
    return BlobUpload(
        data=data,
        content_type=upload.content_type or "",
        original_name=upload.filename,
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/")
def index(request: Request) -> dict:
    """Return a small banner describing the running service."""
    manager = _manager(request)
    return {
        "message": "Gallery Backend API is running",
        "version": __version__,
        "storage": {
            "blob": manager.blob_store.name,
            "metadata": manager.metadata_store.name,
        },
        "timestamp": _now(),
    }


@router.get("/health")
def health(request: Request) -> dict:
    """Report liveness and downstream store connectivity.

    Always answers 200; ``status`` is ``"degraded"`` when a store is
    unreachable so load balancers can still reach the process.
    """
    report = _manager(request).health()
    report["timestamp"] = _now()
    return report


@router.get("/stats")
def stats(request: Request) -> dict:
    """Return per-section item counts and trailing-window upload counts.

    Returns:
        Dictionary with ``totalItems``, ``sections``, ``windows``,
        ``recentUploads`` (7 days), ``monthlyUploads`` (30 days) and
        ``timestamp``.
    """
    result = _manager(request).stats()
    return StatsResponse.from_stats(result, datetime.now(timezone.utc)).model_dump(
        by_alias=True, mode="json"
    )


@router.post("/upload", status_code=201)
async def upload(request: Request) -> dict:
    """Upload an image with its descriptive fields.

    Expects a multipart form with a ``file`` part and optional ``section``,
    ``title``, ``description``, ``materials`` and ``paintingSize`` fields.

    Returns:
        Dictionary with ``message`` and the created ``item``.

    Raises:
        HTTPException: 400 when no file was sent.
    """
    manager = _manager(request)
    form = await request.form()
    try:
        blob = await _upload_from_form(form, manager.max_upload_bytes)
        if blob is None:
            raise HTTPException(status_code=400, detail="File upload failed or no file provided.")
        item = await run_in_threadpool(manager.ingest, blob, _fields_from_form(form))
    finally:
        await form.close()

    return {
        "message": "File uploaded and saved successfully!",
        "item": GalleryItemResponse.from_item(item).to_json(),
    }


@router.get("/files/item/{item_id}")
def get_item(item_id: str, request: Request) -> dict:
    """Return a single item by identifier (400 if malformed, 404 if unknown)."""
    item = _manager(request).get_by_id(item_id)
    return GalleryItemResponse.from_item(item).to_json()


@router.get("/files/{section}")
def list_files(section: str, request: Request) -> dict:
    """Return every item of a section, newest first.

    An unknown section yields an empty list, not an error.
    """
    items = _manager(request).list_by_section(section)
    return {"files": [GalleryItemResponse.from_item(item).to_json() for item in items]}


@router.put("/update/{item_id}")
async def update(item_id: str, request: Request) -> dict:
    """Change some fields of an item and/or replace its image.

    Accepts the same multipart fields as ``POST /upload``, all optional.
    Only fields present in the form are changed.
    """
    manager = _manager(request)
    form = await request.form()
    try:
        blob = await _upload_from_form(form, manager.max_upload_bytes)
        item = await run_in_threadpool(manager.update, item_id, _fields_from_form(form), blob)
    finally:
        await form.close()

    return {
        "message": "Item updated successfully!",
        "item": GalleryItemResponse.from_item(item).to_json(),
    }


def _delete_response(manager: AssetManager, item_id: str) -> dict:
    try:
        result = manager.delete(item_id)
    except PartialFailure as ex:
        return {
            "message": "Item deleted from the database.",
            "warning": "The image file could not be removed from storage and needs cleanup.",
            "filename": ex.blob_key,
            "timestamp": _now(),
        }
    return {
        "message": "Item deleted successfully.",
        "id": result.item_id,
        "timestamp": _now(),
    }


@router.delete("/delete/{item_id}")
def delete_item(item_id: str, request: Request) -> dict:
    """Delete an item's record and image.

    A 200 response carrying ``warning`` means the record is gone but the
    image could not be removed from storage.
    """
    return _delete_response(_manager(request), item_id)


@router.delete("/delete")
def delete_legacy(req: LegacyDeleteRequest, request: Request) -> dict:
    """Delete an item identified by its image filename within a section."""
    manager = _manager(request)
    item = manager.find_by_blob_key(req.section, req.filename)
    return _delete_response(manager, item.id)


# Two-segment catch-all; must stay the last route registered.
@router.get("/{section}/{slug}")
def get_by_slug(section: str, slug: str, request: Request) -> dict:
    """Return the item of *section* whose derived slug equals *slug*."""
    item = _manager(request).find_by_slug(section, slug)
    return GalleryItemResponse.from_item(item).to_json()


# ---------------------------------------------------------------------------
# Error mapping.
# ---------------------------------------------------------------------------


def _register_error_handlers(app: FastAPI, cfg: GalleryConfig) -> None:
    """Translate core exceptions into JSON error responses."""

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "Item not found."})

    @app.exception_handler(StoreFailure)
    async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
        content = {
            "error": f"The {exc.store} store could not complete the request.",
            "store": exc.store,
            "timestamp": _now(),
        }
        if cfg.expose_error_details:
            content["details"] = f"{exc.operation}: {exc.detail}"
        return JSONResponse(status_code=500, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation Error", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            content = {
                "error": "Route not found",
                "method": request.method,
                "url": str(request.url.path),
            }
        else:
            content = {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content)


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    cfg: GalleryConfig | None = None,
    *,
    blob_store: BlobStore | None = None,
    metadata_store: MetadataStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Configuration; defaults to the global ``config``.
        blob_store: Blob store to use instead of the configured one.
        metadata_store: Metadata store to use instead of the configured one.

    Returns:
        A FastAPI app whose lifespan opens and closes the stores.
    """
    cfg = cfg or config
    blob_store = blob_store or build_blob_store(cfg)
    metadata_store = metadata_store or build_metadata_store(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the stores on startup and close them on shutdown."""
        manager = AssetManager(
            blob_store,
            metadata_store,
            max_upload_bytes=cfg.max_upload_bytes,
            allowed_formats=cfg.allowed_image_formats,
            stats_window_days=cfg.stats_window_days,
        )
        manager.open()
        app.state.asset_manager = manager
        logger.info(f"Stores opened (blob={blob_store.name}, metadata={metadata_store.name}).")

        yield  # Application runs here.

        manager.close()
        logger.info("Stores closed on shutdown.")

    app = FastAPI(
        title="Art Gallery Backend",
        description="Image uploads with descriptive metadata for an art gallery site.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
        )
        return response

    # Local images are served straight from the upload directory.
    if isinstance(blob_store, LocalBlobStore):
        blob_store.root.mkdir(parents=True, exist_ok=True)
        app.mount(
            blob_store.public_path,
            StaticFiles(directory=str(blob_store.root)),
            name="uploads",
        )

    _register_error_handlers(app, cfg)
    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~artgallery.core.config.config`
    (``ARTGALLERY_SERVER_HOST``, ``ARTGALLERY_SERVER_PORT``,
    ``ARTGALLERY_LOG_LEVEL``). Defaults to ``0.0.0.0:5001``.

    This function is registered as the ``artgallery`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    uvicorn.run(
        "artgallery.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
