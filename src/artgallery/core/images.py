"""Image content inspection.

Uploads are identified from their bytes with Pillow, never from the MIME type
or filename the client sent. Only raster formats on the allow-list are
stored; anything Pillow cannot decode (SVG, HTML, text with an image
extension) is rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image

from artgallery.core.slugs import filename_stem

logger = logging.getLogger(__name__)

# Pillow format names accepted by default.
DEFAULT_ALLOWED_FORMATS = ("JPEG", "PNG", "GIF", "WEBP")

_FORMAT_ALIASES = {"JPG": "JPEG"}

_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "GIF": ".gif", "WEBP": ".webp"}


@dataclass(frozen=True)
class ImageInfo:
    """Format and pixel size of a decoded image."""

    format: str
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        return Image.MIME.get(self.format, f"image/{self.format.lower()}")

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.format, f".{self.format.lower()}")

    def storage_name(self, original_name: str) -> str:
        """Return *original_name* with its extension replaced by the detected one.

        Blob keys are derived from this name, so a PNG uploaded as
        ``page.html`` is stored (and served) as ``page.png``.
        """
        return f"{filename_stem(original_name) or 'image'}{self.extension}"


def normalise_format(name: str) -> str:
    """Map a user-facing format name (``jpg``, ``png``) to Pillow's name."""
    upper = name.strip().upper()
    return _FORMAT_ALIASES.get(upper, upper)


def inspect_image(data: bytes) -> ImageInfo | None:
    """Identify encoded image bytes.

    The header is parsed for format and size, then ``verify()`` checks the
    rest of the stream without decoding pixels.

    Returns:
        The image's format and size, or ``None`` if Pillow cannot read it.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            info = ImageInfo(format=img.format or "", width=img.width, height=img.height)
            img.verify()
    except Exception as ex:
        logger.debug(f"Rejected undecodable upload ({len(data)} bytes): {ex}")
        return None
    return info
