"""Package utilities for CBZ archive creation.

These utilities handle the final stage of a conversion:
- Naming page images with a consistent, zero-padded pattern
- Copying image bytes verbatim from the EPUB into the CBZ
- Serializing and appending the ``ComicInfo.xml`` descriptor

Entries are written with a fixed timestamp so converting the same input twice
yields byte-identical archives.
"""

from __future__ import annotations

import io
import logging
import posixpath
import zipfile
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import List, Optional, Tuple

from lxml import etree as ET
from PIL import Image, UnidentifiedImageError

from epub2cbz.core.archive import EpubArchive
from epub2cbz.core.exceptions import (
    EntryNotFoundError,
    EntryReadError,
    ImageMissingError,
    OutputWriteError,
)
from epub2cbz.core.models import ComicInfo, ComicPageInfo, ConversionSettings
from epub2cbz.core.utils import digit_count

logger = logging.getLogger(__name__)

__all__ = [
    "COMIC_INFO_NAME",
    "XML_DECLARATION",
    "PackageReport",
    "normalize_image_name",
    "serialize_comic_info",
    "write_cbz_package",
]

COMIC_INFO_NAME = "ComicInfo.xml"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Earliest timestamp the zip format can store
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)

_COMPRESSION = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


@dataclass
class PackageReport:
    """What :func:`write_cbz_package` actually wrote."""

    pages_written: int = 0
    images_skipped: int = 0
    comic_info_written: bool = False


def normalize_image_name(original_name: str, index: int, total: int, prefix: str = "page") -> str:
    """Return the output entry name for the *index*-th of *total* images.

    The index is zero-padded to the number of digits in *total* and the
    source extension is kept verbatim::

        >>> normalize_image_name("OEBPS/images/cover.JPG", 3, 12)
        'page03.JPG'
    """
    ext = posixpath.splitext(original_name)[1]
    return f"{prefix}{index:0{digit_count(total)}d}{ext}"


def serialize_comic_info(info: ComicInfo) -> str:
    """Return *info* as ``ComicInfo.xml`` text.

    The output starts with an XML declaration line, is indented with two
    spaces and omits every field left at its zero value.

    Raises ``ValueError`` when a value cannot be represented in XML (e.g.
    control characters in a title).
    """
    root = ET.Element("ComicInfo")
    for f in fields(info):
        value = getattr(info, f.name)
        if not value:
            continue
        tag = f.metadata["xml"]
        if f.name == "pages":
            pages_el = ET.SubElement(root, tag)
            for page in value:
                ET.SubElement(pages_el, "Page", attrib=page.attributes())
            continue
        ET.SubElement(root, tag).text = str(value)
    body = ET.tostring(root, pretty_print=True, encoding="unicode")
    return XML_DECLARATION + body


def _zip_info(name: str, compress_type: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=_FIXED_DATE_TIME)
    info.compress_type = compress_type
    info.external_attr = 0o644 << 16
    return info


def _image_dimensions(data: bytes) -> Tuple[int, int]:
    """Return ``(width, height)`` from the image header, ``(0, 0)`` if unreadable."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError):
        return 0, 0


def _read_image(archive: EpubArchive, image_path: str) -> Optional[bytes]:
    try:
        return archive.read_entry(image_path)
    except EntryNotFoundError as e:
        logger.warning("%s", ImageMissingError(f"Image not found in EPUB: {image_path}", archive.path, e))
    except EntryReadError as e:
        logger.warning("%s", ImageMissingError(f"Error reading image {image_path}: {e.cause}", archive.path, e))
    return None


def _write_comic_info(out: zipfile.ZipFile, info: ComicInfo, compress_type: int) -> bool:
    try:
        xml_text = serialize_comic_info(info)
    except (ValueError, TypeError) as exc:
        logger.error("Error serializing ComicInfo: %s", exc)
        return False
    try:
        out.writestr(_zip_info(COMIC_INFO_NAME, compress_type), xml_text.encode("utf-8"))
    except OSError as exc:
        logger.error("Error writing %s to archive: %s", COMIC_INFO_NAME, exc)
        return False
    return True


def write_cbz_package(
    archive: EpubArchive,
    image_paths: List[str],
    output_path: str | Path,
    comic_info: Optional[ComicInfo] = None,
    settings: Optional[ConversionSettings] = None,
) -> PackageReport:
    """Write the CBZ archive *output_path* from *image_paths* in order.

    Args:
        archive: Open source EPUB
        image_paths: Resolved image references in reading order
        output_path: Destination archive, overwritten if it exists
        comic_info: Optional metadata record written last as ``ComicInfo.xml``
        settings: Naming and compression settings

    Returns:
        PackageReport with the number of pages written and skipped

    Raises:
        OutputWriteError: If the output archive cannot be created or written.
            A partially written file is left in place.
    """
    settings = settings or ConversionSettings()
    output_path = Path(output_path)
    compress_type = _COMPRESSION.get(settings.compression, zipfile.ZIP_DEFLATED)
    want_info = comic_info is not None and settings.write_comic_info
    report = PackageReport()
    page_infos: List[ComicPageInfo] = []
    total = len(image_paths)

    try:
        out = zipfile.ZipFile(output_path, "w", compression=compress_type)
    except OSError as e:
        raise OutputWriteError(f"Error creating output archive: {e}", output_path, e) from e

    try:
        with out:
            for index, image_path in enumerate(image_paths):
                data = _read_image(archive, image_path)
                if data is None:
                    report.images_skipped += 1
                    continue

                name = normalize_image_name(image_path, index, total, settings.page_prefix)
                out.writestr(_zip_info(name, compress_type), data)
                report.pages_written += 1
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug("I/O: %s -> %s bytes=%d", image_path, name, len(data))

                if want_info:
                    width, height = _image_dimensions(data)
                    page_infos.append(ComicPageInfo(
                        image=index,
                        image_size=len(data),
                        image_width=width,
                        image_height=height,
                    ))

            if want_info:
                info = replace(comic_info, page_count=report.pages_written, pages=page_infos)
                report.comic_info_written = _write_comic_info(out, info, compress_type)
    except OSError as e:
        raise OutputWriteError(
            f"Error writing output archive: {e}", output_path, e, partial_output=True,
        ) from e

    logger.info("Images extracted to %s (%d pages)", output_path, report.pages_written)
    return report
