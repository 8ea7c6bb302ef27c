"""MongoDB metadata store using pymongo.

Records are stored as documents in one collection with an index on
``section`` (listing) and ``upload_date`` (ordering and trailing-window
counts). Identifiers are ``ObjectId`` hex strings; the document's ``_id`` is
mapped to the ``id`` key on the way out.

Per-document atomicity comes from ``find_one_and_update``; nothing here spans
more than one document.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument

from artgallery.stores.base import MetadataStore

logger = logging.getLogger(__name__)


class MongoMetadataStore(MetadataStore):
    """Metadata store backed by a MongoDB collection.

    Args:
        uri: MongoDB connection string.
        database: Database name.
        collection: Collection name.
        timeout_ms: Server selection and socket timeout.
        client: Pre-built ``MongoClient`` (tests pass a mock here).
    """

    name = "mongo"

    def __init__(
        self,
        uri: str,
        database: str = "artgallery",
        collection: str = "galleryitems",
        *,
        timeout_ms: int = 5000,
        client: MongoClient | None = None,
    ) -> None:
        self.uri = uri
        self.database_name = database
        self.collection_name = collection
        self.timeout_ms = timeout_ms
        self.client = client
        self._owns_client = client is None
        self.collection = None

    def open(self) -> None:
        if self.client is None:
            self.client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                socketTimeoutMS=self.timeout_ms,
                tz_aware=True,
            )
        self.collection = self.client[self.database_name][self.collection_name]
        self.collection.create_index([("section", ASCENDING), ("upload_date", DESCENDING)])
        self.collection.create_index([("upload_date", DESCENDING)])
        logger.info(f"Connected to MongoDB collection {self.database_name}.{self.collection_name}")

    def close(self) -> None:
        if self.client is not None and self._owns_client:
            self.client.close()
            self.client = None
        self.collection = None

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except Exception as ex:
            logger.warning(f"MongoDB ping failed: {ex}")
            return False

    def is_valid_id(self, item_id: str) -> bool:
        return ObjectId.is_valid(item_id)

    def create(self, record: dict) -> str:
        result = self.collection.insert_one(dict(record))
        return str(result.inserted_id)

    def find_by_id(self, item_id: str) -> dict | None:
        return _from_document(self.collection.find_one({"_id": ObjectId(item_id)}))

    def find_by_section(self, section: str) -> list[dict]:
        cursor = self.collection.find({"section": section}).sort("upload_date", DESCENDING)
        return [_from_document(doc) for doc in cursor]

    def find_one(self, section: str, field: str, value: str) -> dict | None:
        return _from_document(self.collection.find_one({"section": section, field: value}))

    def update(self, item_id: str, changes: dict) -> dict | None:
        document = self.collection.find_one_and_update(
            {"_id": ObjectId(item_id)},
            {"$set": dict(changes)},
            return_document=ReturnDocument.AFTER,
        )
        return _from_document(document)

    def delete(self, item_id: str) -> bool:
        return self.collection.delete_one({"_id": ObjectId(item_id)}).deleted_count == 1

    def count_grouped_by(self, field: str) -> dict[str, int]:
        pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
        return {
            row["_id"]: row["count"]
            for row in self.collection.aggregate(pipeline)
            if row["_id"] is not None and row["count"] > 0
        }

    def count_where(self, field: str, since: datetime) -> int:
        return self.collection.count_documents({field: {"$gte": since}})


def _from_document(document: dict | None) -> dict | None:
    if document is None:
        return None
    record = {k: v for k, v in document.items() if k != "_id"}
    record["id"] = str(document["_id"])
    # Documents written before tz_aware clients were used come back naive.
    upload_date = record.get("upload_date")
    if isinstance(upload_date, datetime) and upload_date.tzinfo is None:
        record["upload_date"] = upload_date.replace(tzinfo=timezone.utc)
    return record
