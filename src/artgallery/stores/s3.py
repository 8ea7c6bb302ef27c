"""S3-compatible cloud blob store (AWS S3, Cloudflare R2, MinIO).

Keys live under a configurable prefix (the "folder"). URLs are either built
from a public base URL (a CDN or custom domain in front of the bucket) or are
presigned GET URLs, regenerated on every read so rotation of the signing key
or a move to a new domain never requires rewriting metadata.

Annotations become S3 object tags.
"""

from __future__ import annotations

import logging
from urllib.parse import quote, urlencode

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from artgallery.stores.base import BlobStore, StoredBlob, make_blob_key

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3BlobStore(BlobStore):
    """Blob store backed by a single S3 bucket.

    Args:
        bucket: Bucket name.
        prefix: Key prefix, without trailing slash.
        public_base_url: Base URL for public object access; empty to presign.
        presign_expiry: Lifetime of presigned URLs in seconds.
        client: Pre-built boto3 S3 client. When omitted, one is created in
            :meth:`open` from the remaining keyword arguments.
    """

    name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        public_base_url: str = "",
        presign_expiry: int = 3600,
        endpoint_url: str | None = None,
        region: str = "auto",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client=None,
    ) -> None:
        if not bucket:
            raise ValueError("S3 blob store requires a bucket name")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.public_base_url = public_base_url.rstrip("/")
        self.presign_expiry = presign_expiry
        self._client_kwargs = {
            "endpoint_url": endpoint_url,
            "region_name": region,
            "aws_access_key_id": access_key_id,
            "aws_secret_access_key": secret_access_key,
        }
        self.client = client

    def open(self) -> None:
        if self.client is None:
            self.client = boto3.client(
                "s3",
                config=BotoConfig(signature_version="s3v4"),
                **self._client_kwargs,
            )
        logger.info(f"S3 blob store ready for bucket {self.bucket}")

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    def ping(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return True
        except Exception as ex:
            logger.warning(f"S3 ping failed for bucket {self.bucket}: {ex}")
            return False

    def put(self, data, content_type, *, original_name="", annotations=None) -> StoredBlob:
        key = make_blob_key(original_name, content_type)
        if self.prefix:
            key = f"{self.prefix}/{key}"
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
            "CacheControl": "public, max-age=604800",
        }
        if annotations:
            params["Tagging"] = urlencode(annotations)
        self.client.put_object(**params)
        return StoredBlob(key=key, url=self.url_for(key))

    def delete(self, key: str) -> bool:
        # DeleteObject succeeds for missing keys, so check first to report it.
        if not self.exists(key):
            return False
        self.client.delete_object(Bucket=self.bucket, Key=key)
        return True

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{quote(key)}"
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.presign_expiry,
        )

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as ex:
            if ex.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            raise
