"""Pydantic request and response models for the Art Gallery API.

Field names on the wire follow the gallery frontend's existing contract
(``_id``, ``originalName``, ``paintingSize``, ``uploadDate``) via aliases, so
Python code keeps snake_case attributes.

Models
------
GalleryItemResponse
    One gallery item as returned by every item-producing endpoint.
LegacyDeleteRequest
    Body of ``DELETE /delete``: identifies an item by blob key and section.
StatsResponse
    Body of ``GET /stats``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from artgallery.core.models import GalleryItem, GalleryStats
from artgallery.core.slugs import slug_for


class GalleryItemResponse(BaseModel):
    """Serialised form of a :class:`~artgallery.core.models.GalleryItem`.

    Attributes:
        id: Metadata store identifier (``_id`` on the wire).
        section: Category tag.
        filename: Blob key of the stored image.
        original_name: Filename supplied by the uploader.
        title: Display title.
        description: Free-text description.
        materials: Painting materials (paintings only).
        painting_size: Painting dimensions (paintings only).
        width: Image width in pixels.
        height: Image height in pixels.
        upload_date: Creation timestamp.
        url: Fetchable image URL, computed at response time.
        slug: Derived slug for ``GET /{section}/{slug}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    section: str
    filename: str
    original_name: str = Field(..., alias="originalName")
    title: str = ""
    description: str = ""
    materials: str = ""
    painting_size: str = Field(default="", alias="paintingSize")
    width: int | None = None
    height: int | None = None
    upload_date: datetime = Field(..., alias="uploadDate")
    url: str
    slug: str

    @classmethod
    def from_item(cls, item: GalleryItem) -> "GalleryItemResponse":
        return cls(
            id=item.id,
            section=item.section,
            filename=item.blob_key,
            original_name=item.original_name,
            title=item.title,
            description=item.description,
            materials=item.materials,
            painting_size=item.dimensions,
            width=item.width,
            height=item.height,
            upload_date=item.upload_date,
            url=item.url,
            slug=slug_for(item.section, item.title, item.original_name),
        )

    def to_json(self) -> dict:
        """Dump with wire aliases and JSON-safe values."""
        return self.model_dump(by_alias=True, mode="json")


class LegacyDeleteRequest(BaseModel):
    """Request body for ``DELETE /delete``.

    Attributes:
        filename: Blob key of the item's image.
        section: Section the item belongs to.
    """

    filename: str = Field(..., min_length=1, description="Blob key of the image to delete.")
    section: str = Field(..., min_length=1, description="Section containing the item.")


class StatsResponse(BaseModel):
    """Response body for ``GET /stats``.

    ``recentUploads`` and ``monthlyUploads`` are the 7- and 30-day entries of
    ``windows`` (zero when those windows are not configured).
    """

    model_config = ConfigDict(populate_by_name=True)

    total_items: int = Field(..., alias="totalItems")
    sections: dict[str, int]
    windows: dict[str, int]
    recent_uploads: int = Field(..., alias="recentUploads")
    monthly_uploads: int = Field(..., alias="monthlyUploads")
    timestamp: datetime

    @classmethod
    def from_stats(cls, stats: GalleryStats, timestamp: datetime) -> "StatsResponse":
        return cls(
            total_items=stats.total_items,
            sections=stats.sections,
            windows={f"{days}d": count for days, count in stats.windows.items()},
            recent_uploads=stats.windows.get(7, 0),
            monthly_uploads=stats.windows.get(30, 0),
            timestamp=timestamp,
        )
