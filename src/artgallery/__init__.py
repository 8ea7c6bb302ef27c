"""Art Gallery Backend - image uploads with descriptive metadata for a gallery site."""

__version__ = "0.3.0"

from artgallery.core.asset_manager import AssetManager
from artgallery.core.config import GalleryConfig, config
from artgallery.core.models import GalleryItem, ItemFields

__all__ = [
    "AssetManager",
    "GalleryConfig",
    "GalleryItem",
    "ItemFields",
    "config",
]
