from __future__ import annotations

"""Mapping of e-book bibliographic metadata to a ComicInfo record.

The mapping is a heuristic: one creator fills both the writer and the
penciller roles, and the manga flag is guessed from the script of the series
title.
"""

import logging
from typing import Optional

from epub2cbz.core.models import BookMetadata, ComicInfo

logger = logging.getLogger(__name__)

__all__ = [
    "NOTES",
    "UNKNOWN",
    "contains_japanese",
    "has_metadata",
    "create_comic_info",
]

NOTES = "Generated from EPUB metadata"
UNKNOWN = "Unknown"

# Fields whose presence triggers a ComicInfo record (rights and series-id do not)
_TRIGGER_FIELDS = (
    "title",
    "creator",
    "publisher",
    "series",
    "date",
    "language",
    "identifier",
    "number",
)

_JAPANESE_RANGES = (
    (0x3040, 0x309F),  # Hiragana
    (0x30A0, 0x30FF),  # Katakana
    (0x4E00, 0x9FBF),  # CJK ideographs
)


def contains_japanese(text: str) -> bool:
    """Return True if *text* has a Hiragana, Katakana or CJK ideograph character."""
    for ch in text:
        cp = ord(ch)
        for low, high in _JAPANESE_RANGES:
            if low <= cp <= high:
                return True
    return False


def has_metadata(metadata: BookMetadata) -> bool:
    return any(metadata.first(name) for name in _TRIGGER_FIELDS)


def _parse_year(date: str) -> int:
    head = date[:4]
    # ASCII digits only; int() would also take full-width digits and underscores
    if len(head) < 4 or not (head.isascii() and head.isdigit()):
        logger.debug("Unparseable year in date %r", date)
        return 0
    return int(head)


def create_comic_info(metadata: BookMetadata) -> Optional[ComicInfo]:
    """Map *metadata* to a :class:`ComicInfo`, or ``None`` if there is nothing to map."""
    if not has_metadata(metadata):
        return None

    info = ComicInfo(
        title=metadata.first("title"),
        series=metadata.first("series"),
        number=metadata.first("number"),
        publisher=metadata.first("publisher"),
        language_iso=metadata.first("language"),
        notes=NOTES,
    )

    date = metadata.first("date")
    if date:
        info.year = _parse_year(date)

    if info.series:
        info.manga = "Yes" if contains_japanese(info.series) else "No"
    else:
        info.manga = UNKNOWN

    creator = metadata.first("creator")
    if creator:
        info.writer = creator
        info.penciller = creator

    info.black_and_white = UNKNOWN
    info.age_rating = UNKNOWN
    return info
