"""Tests for artgallery.api.models: Pydantic response/request models.

Tests cover:
- Wire aliases of GalleryItemResponse.
- Derived slug in responses.
- StatsResponse window mapping.
- LegacyDeleteRequest validation.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from artgallery.api.models import GalleryItemResponse, LegacyDeleteRequest, StatsResponse
from artgallery.core.models import GalleryItem, GalleryStats

UPLOADED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def item() -> GalleryItem:
    return GalleryItem(
        id="abc123",
        section="paintings",
        blob_key="1740830400000-sunset-a1b2c3.jpg",
        original_name="sunset.jpg",
        upload_date=UPLOADED,
        title="Sunset",
        description="Evening",
        materials="oil on canvas",
        dimensions="50x70 cm",
        width=640,
        height=480,
        url="/static/uploads/1740830400000-sunset-a1b2c3.jpg",
    )


class TestGalleryItemResponse:
    """Test GalleryItemResponse serialisation."""

    def test_wire_aliases(self, item):
        data = GalleryItemResponse.from_item(item).to_json()
        assert data["_id"] == "abc123"
        assert data["filename"] == item.blob_key
        assert data["originalName"] == "sunset.jpg"
        assert data["paintingSize"] == "50x70 cm"
        assert data["width"] == 640
        assert data["height"] == 480
        assert data["uploadDate"].startswith("2025-03-01T12:00:00")
        assert data["url"] == item.url

    def test_slug_is_derived(self, item):
        assert GalleryItemResponse.from_item(item).slug == "sunset-sunset"

    def test_accepts_aliases_on_input(self, item):
        data = GalleryItemResponse.from_item(item).to_json()
        assert GalleryItemResponse.model_validate(data).id == "abc123"


class TestStatsResponse:
    """Test StatsResponse.from_stats."""

    def test_windows_and_legacy_counts(self):
        stats = GalleryStats(sections={"paintings": 3}, total_items=3, windows={7: 1, 30: 2})
        data = StatsResponse.from_stats(stats, UPLOADED).model_dump(by_alias=True, mode="json")
        assert data["totalItems"] == 3
        assert data["sections"] == {"paintings": 3}
        assert data["windows"] == {"7d": 1, "30d": 2}
        assert data["recentUploads"] == 1
        assert data["monthlyUploads"] == 2

    def test_missing_windows_default_to_zero(self):
        stats = GalleryStats(windows={1: 5})
        response = StatsResponse.from_stats(stats, UPLOADED)
        assert response.recent_uploads == 0
        assert response.monthly_uploads == 0


class TestLegacyDeleteRequest:
    """Test LegacyDeleteRequest validation."""

    def test_valid(self):
        req = LegacyDeleteRequest(filename="a.jpg", section="paintings")
        assert req.filename == "a.jpg"

    def test_empty_fields_rejected(self):
        with pytest.raises(ValidationError):
            LegacyDeleteRequest(filename="", section="paintings")

    def test_missing_section_rejected(self):
        with pytest.raises(ValidationError):
            LegacyDeleteRequest(filename="a.jpg")
