from __future__ import annotations

"""Shared data structures used across the epub2cbz core.

This module is intentionally free of I/O code so that the contained objects
can be reused in any context (unit-tests, CLI, batch runner, etc.).
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

__all__ = [
    "METADATA_FIELDS",
    "BookMetadata",
    "PackageDocument",
    "ComicPageInfo",
    "ComicInfo",
    "ConversionSettings",
    "ConversionResult",
]

# Recognized package-document metadata elements, keyed by local element name.
METADATA_FIELDS: Dict[str, str] = {
    "identifier": "identifier",
    "title": "title",
    "language": "language",
    "creator": "creator",
    "publisher": "publisher",
    "date": "date",
    "rights": "rights",
    "series": "series",
    "seriesid": "series_id",
    "number": "number",
}


@dataclass
class BookMetadata:
    """Bibliographic metadata read from the package document.

    Every attribute holds all non-empty occurrences in document order; the
    mapper only ever looks at the first one.
    """

    identifier: List[str] = field(default_factory=list)
    title: List[str] = field(default_factory=list)
    language: List[str] = field(default_factory=list)
    creator: List[str] = field(default_factory=list)
    publisher: List[str] = field(default_factory=list)
    date: List[str] = field(default_factory=list)
    rights: List[str] = field(default_factory=list)
    series: List[str] = field(default_factory=list)
    series_id: List[str] = field(default_factory=list)
    number: List[str] = field(default_factory=list)

    def first(self, name: str) -> str:
        """Return the first value of field *name* or an empty string."""
        values = getattr(self, name)
        return values[0] if values else ""

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass
class PackageDocument:
    """Decoded package document (OPF).

    Attributes
    ----------
    path
        In-archive path of the package document itself.
    metadata
        Bibliographic metadata block.
    manifest
        Mapping of manifest item id to its href (relative to *path*).
    spine
        Ordered manifest ids; duplicates are legal and preserved.
    """

    path: str
    metadata: BookMetadata = field(default_factory=BookMetadata)
    manifest: Dict[str, str] = field(default_factory=dict)
    spine: List[str] = field(default_factory=list)


@dataclass
class ComicPageInfo:
    """One ``<Page>`` element of the ComicInfo ``<Pages>`` list."""

    image: int
    image_size: int = 0
    image_width: int = 0
    image_height: int = 0

    def attributes(self) -> Dict[str, str]:
        attrs = {"Image": str(self.image)}
        if self.image_size:
            attrs["ImageSize"] = str(self.image_size)
        if self.image_width:
            attrs["ImageWidth"] = str(self.image_width)
        if self.image_height:
            attrs["ImageHeight"] = str(self.image_height)
        return attrs


def _xml(tag: str, default: Any = "") -> Any:
    return field(default=default, metadata={"xml": tag})


@dataclass
class ComicInfo:
    """ComicRack ``ComicInfo.xml`` record.

    Field order matches the schema sequence; each field carries its XML element
    name in ``metadata["xml"]``. Fields left at their zero value are not
    serialized.
    """

    title: str = _xml("Title")
    series: str = _xml("Series")
    number: str = _xml("Number")
    count: int = _xml("Count", 0)
    volume: int = _xml("Volume", 0)
    alternate_series: str = _xml("AlternateSeries")
    alternate_number: str = _xml("AlternateNumber")
    alternate_count: int = _xml("AlternateCount", 0)
    summary: str = _xml("Summary")
    notes: str = _xml("Notes")
    year: int = _xml("Year", 0)
    month: int = _xml("Month", 0)
    day: int = _xml("Day", 0)
    writer: str = _xml("Writer")
    penciller: str = _xml("Penciller")
    inker: str = _xml("Inker")
    colorist: str = _xml("Colorist")
    letterer: str = _xml("Letterer")
    cover_artist: str = _xml("CoverArtist")
    editor: str = _xml("Editor")
    publisher: str = _xml("Publisher")
    imprint: str = _xml("Imprint")
    genre: str = _xml("Genre")
    web: str = _xml("Web")
    page_count: int = _xml("PageCount", 0)
    language_iso: str = _xml("LanguageISO")
    format: str = _xml("Format")
    black_and_white: str = _xml("BlackAndWhite")
    manga: str = _xml("Manga")
    characters: str = _xml("Characters")
    teams: str = _xml("Teams")
    locations: str = _xml("Locations")
    scan_information: str = _xml("ScanInformation")
    story_arc: str = _xml("StoryArc")
    series_group: str = _xml("SeriesGroup")
    age_rating: str = _xml("AgeRating")
    pages: List[ComicPageInfo] = field(default_factory=list, metadata={"xml": "Pages"})
    community_rating: str = _xml("CommunityRating")
    main_character_or_team: str = _xml("MainCharacterOrTeam")
    review: str = _xml("Review")


@dataclass
class ConversionSettings:
    """Tunable conversion behaviour, usually built from ``conversion.yml``."""

    page_prefix: str = "page"
    compression: str = "deflated"
    write_comic_info: bool = True
    max_workers: int = 0

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "ConversionSettings":
        """Build settings from a config mapping, ignoring unknown or bad keys."""
        settings = cls()
        if not config:
            return settings
        prefix = config.get("page_prefix")
        if isinstance(prefix, str) and prefix:
            settings.page_prefix = prefix
        compression = str(config.get("compression", settings.compression)).strip().lower()
        if compression in ("deflated", "stored"):
            settings.compression = compression
        if "write_comic_info" in config:
            settings.write_comic_info = bool(config.get("write_comic_info"))
        try:
            settings.max_workers = max(0, int(config.get("max_workers", 0) or 0))
        except (TypeError, ValueError):
            settings.max_workers = 0
        return settings


@dataclass
class ConversionResult:
    """Outcome of converting one EPUB file.

    ``partial_output`` is true when a failed conversion may have left a
    partially written archive at *output_path*.
    """

    input_path: Path
    output_path: Path
    success: bool = False
    error: Optional[Exception] = None
    pages_written: int = 0
    images_skipped: int = 0
    comic_info_written: bool = False
    partial_output: bool = False
