from __future__ import annotations

"""Page image extraction from XHTML page documents.

Pages are parsed with the tolerant lxml HTML parser because many encoders
emit markup that is not well-formed XML. Only the first image of a page is
treated as "the page's image".
"""

import logging
from typing import List, Optional

from lxml import etree as ET
from lxml import html as LH

from epub2cbz.core.archive import EpubArchive
from epub2cbz.core.exceptions import EntryNotFoundError, EntryReadError, PageReadError
from epub2cbz.core.utils import local_name, resolve_href

logger = logging.getLogger(__name__)

__all__ = ["find_first_image", "extract_page_image", "collect_page_images"]

_XLINK_HREF = "{http://www.w3.org/1999/xlink}href"


def _image_source(el: ET._Element) -> str:
    """Return the non-empty source of an image-type element, else ``""``."""
    name = local_name(el.tag)
    if name == "img":
        return (el.get("src") or "").strip()
    if name == "image":
        # SVG <image>; the HTML parser keeps the prefix in the attribute name
        for attr in ("xlink:href", _XLINK_HREF, "href"):
            value = (el.get(attr) or "").strip()
            if value:
                return value
    return ""


def find_first_image(markup: bytes, page_path: str) -> Optional[str]:
    """Return the resolved path of the first image in *markup*.

    The walk is pre-order in document order; the source is joined against the
    directory of *page_path*. Returns ``None`` when the page holds no image or
    nothing can be recovered from the markup.
    """
    if not markup or not markup.strip():
        logger.warning("Page %s is empty", page_path)
        return None
    try:
        root = LH.document_fromstring(markup)
    except (ET.ParserError, ValueError) as e:
        logger.warning("Could not parse page %s: %s", page_path, e)
        return None

    for el in root.iter():
        src = _image_source(el)
        if src:
            image_path = resolve_href(page_path, src)
            if image_path:
                return image_path
    return None


def extract_page_image(archive: EpubArchive, page_path: str) -> Optional[str]:
    """Read page *page_path* from *archive* and return its image reference.

    Raises
    ------
    PageReadError
        If the page document is missing or cannot be read.
    """
    try:
        markup = archive.read_entry(page_path)
    except EntryNotFoundError as e:
        raise PageReadError(f"Page not found: {page_path}", archive.path, e) from e
    except EntryReadError as e:
        raise PageReadError(f"Error reading page {page_path}: {e.cause}", archive.path, e) from e
    return find_first_image(markup, page_path)


def collect_page_images(archive: EpubArchive, page_paths: List[str]) -> List[str]:
    """Return one image reference per page, in reading order.

    Pages without an image contribute nothing; unreadable pages are logged
    and skipped.
    """
    images: List[str] = []
    for page_path in page_paths:
        try:
            image_path = extract_page_image(archive, page_path)
        except PageReadError as e:
            logger.warning("Skipping page: %s", e)
            continue
        if image_path is None:
            logger.debug("No image in page %s", page_path)
            continue
        images.append(image_path)
    return images
