"""Domain data models for gallery items."""

from dataclasses import dataclass, field, fields
from datetime import datetime

PAINTINGS_SECTION = "paintings"
DEFAULT_SECTION = "others"

# Text fields an upload or update may carry.
TEXT_FIELDS = ("section", "title", "description", "materials", "dimensions")


@dataclass
class GalleryItem:
    """A stored image plus its descriptive metadata.

    ``width`` and ``height`` are the pixel size read from the image when it
    was stored; records written before sizes were recorded carry ``None``.
    ``url`` is never persisted: the Asset Manager fills it in from
    ``blob_key`` every time the item is read.
    """

    id: str
    section: str
    blob_key: str
    original_name: str
    upload_date: datetime
    title: str = ""
    description: str = ""
    materials: str = ""
    dimensions: str = ""
    width: int | None = None
    height: int | None = None
    url: str = ""

    @classmethod
    def from_record(cls, record: dict, url: str = "") -> "GalleryItem":
        """Build an item from a metadata store record.

        Args:
            record: Dict returned by a ``MetadataStore`` (must carry ``id``)
            url: Fetchable URL for the item's blob

        Returns:
            Populated GalleryItem
        """
        return cls(
            id=str(record["id"]),
            section=record["section"],
            blob_key=record["blob_key"],
            original_name=record.get("original_name", ""),
            upload_date=record["upload_date"],
            title=record.get("title") or "",
            description=record.get("description") or "",
            materials=record.get("materials") or "",
            dimensions=record.get("dimensions") or "",
            width=record.get("width"),
            height=record.get("height"),
            url=url,
        )

    def to_record(self) -> dict:
        """Return the persisted shape of this item (no ``id``, no ``url``)."""
        return {
            "section": self.section,
            "blob_key": self.blob_key,
            "original_name": self.original_name,
            "title": self.title,
            "description": self.description,
            "materials": self.materials,
            "dimensions": self.dimensions,
            "width": self.width,
            "height": self.height,
            "upload_date": self.upload_date,
        }


@dataclass
class ItemFields:
    """Text fields supplied with an upload or update.

    ``None`` means "not supplied" and leaves the stored value alone during an
    update; an empty string is a real value and overwrites it.
    """

    section: str | None = None
    title: str | None = None
    description: str | None = None
    materials: str | None = None
    dimensions: str | None = None

    def trimmed(self) -> "ItemFields":
        """Return a copy with surrounding whitespace stripped from every supplied field."""
        return ItemFields(
            **{f.name: (v.strip() if v is not None else None) for f, v in self._items()}
        )

    def supplied(self) -> dict[str, str]:
        """Return only the fields that were explicitly supplied."""
        return {f.name: v for f, v in self._items() if v is not None}

    def _items(self):
        return [(f, getattr(self, f.name)) for f in fields(self)]


@dataclass
class BlobUpload:
    """A binary payload waiting to be stored."""

    data: bytes
    content_type: str
    original_name: str


@dataclass
class DeleteResult:
    """Outcome of a successful delete."""

    item_id: str
    blob_key: str
    blob_removed: bool = True


@dataclass
class GalleryStats:
    """Aggregate counts over the metadata store.

    Attributes:
        sections: Sparse mapping of section to item count
        total_items: Sum over all sections
        windows: Mapping of trailing window length in days to upload count
    """

    sections: dict[str, int] = field(default_factory=dict)
    total_items: int = 0
    windows: dict[int, int] = field(default_factory=dict)
