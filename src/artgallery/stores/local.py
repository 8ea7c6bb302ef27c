"""Local filesystem blob store using pathlib."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from artgallery.stores.base import BlobStore, StoredBlob, make_blob_key

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Stores each blob as a file under ``root``.

    Files are served by the API's static mount, so ``url_for`` only joins the
    public path prefix with the key. Annotations go to a hidden sidecar file
    ``.<key>.json`` next to the image.
    """

    name = "local"

    def __init__(self, root: Path, public_path: str = "/static/uploads") -> None:
        self.root = Path(root)
        self.public_path = public_path.rstrip("/")

    def open(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local blob store ready at {self.root}")

    def ping(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)

    def put(self, data, content_type, *, original_name="", annotations=None) -> StoredBlob:
        key = make_blob_key(original_name, content_type)
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temporary name first so a crash never leaves a half-written
        # image under a key that metadata could reference.
        tmp_path = path.with_name(f".{path.name}.part")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
        if annotations:
            self._sidecar(key).write_text(json.dumps(annotations), encoding="utf-8")
        logger.debug(f"Saved blob {key} ({len(data)} bytes)")
        return StoredBlob(key=key, url=self.url_for(key))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        self._sidecar(key).unlink(missing_ok=True)
        if not path.exists():
            return False
        path.unlink()
        return True

    def url_for(self, key: str) -> str:
        return f"{self.public_path}/{key}"

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Blob key escapes store root: {key!r}")
        return path

    def _sidecar(self, key: str) -> Path:
        path = self._path(key)
        return path.with_name(f".{path.name}.json")
