"""Slug derivation for human-readable item URLs.

Slugs are never persisted. They are recomputed from ``(section, title,
original_name)`` whenever needed, so a presentation layer can build the same
links without asking the backend.

Examples:
    >>> slugify("Café au Lait, 1920!")
    'cafe-au-lait-1920'
    >>> slug_for("paintings", "Sunset", "IMG 0042.jpg")
    'sunset-img-0042'
    >>> slug_for("drawings", "", "sketch_01.png")
    'drawings-sketch-01'
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import PurePosixPath

from artgallery.core.models import PAINTINGS_SECTION

_DISALLOWED = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Normalise free text into a URL-safe slug.

    Rules:
        - Decompose accented characters and drop the accents
        - Lowercase
        - Keep only ``[a-z0-9]``; every other run becomes a single hyphen
        - Strip leading/trailing hyphens

    Args:
        text: Raw text (may be empty).

    Returns:
        Slug string, possibly empty.
    """
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _DISALLOWED.sub("-", stripped.lower()).strip("-")


def filename_stem(name: str) -> str:
    """Return the final path component of *name* without its last extension."""
    # Browsers on Windows may send the full client path.
    return PurePosixPath((name or "").replace("\\", "/")).stem


def slug_for(section: str, title: str, original_name: str) -> str:
    """Derive the canonical slug of an item.

    Paintings repeat titles, so their slug always carries the filename stem:
    ``slugify(title)-slugify(stem)``. Other sections use the title alone and
    fall back to ``<section>-<stem>`` when the title is empty.

    Args:
        section: Item section.
        title: Display title (may be empty).
        original_name: Filename supplied at upload time.

    Returns:
        Non-empty slug string.
    """
    title_slug = slugify(title)
    stem_slug = slugify(filename_stem(original_name))
    section_slug = slugify(section)

    if section == PAINTINGS_SECTION:
        parts = [title_slug, stem_slug]
    elif title_slug:
        parts = [title_slug]
    else:
        parts = [section_slug, stem_slug]

    slug = "-".join(p for p in parts if p)
    return slug or section_slug or "item"
