from __future__ import annotations

"""Package document (OPF) parsing and spine resolution.

The manifest/spine indirection is resolved in two stages: the manifest is
read once into an id → href mapping, then each spine id is looked up in it
and joined against the package document's own directory.
"""

import logging
from typing import List

from lxml import etree as ET

from epub2cbz.core.archive import EpubArchive
from epub2cbz.core.exceptions import EmptySpineError
from epub2cbz.core.models import METADATA_FIELDS, BookMetadata, PackageDocument
from epub2cbz.core.parser.container import parse_xml_bytes
from epub2cbz.core.utils import local_name, resolve_href

logger = logging.getLogger(__name__)

__all__ = ["parse_package", "parse_package_bytes", "resolve_spine"]

# calibre keeps series information in <meta name=... content=...> elements
_CALIBRE_META = {
    "calibre:series": "series",
    "calibre:series_index": "number",
}


def _children(node: ET._Element, name: str) -> List[ET._Element]:
    return [child for child in node if local_name(child.tag) == name]


def _first_child(node: ET._Element, name: str):
    for child in node:
        if local_name(child.tag) == name:
            return child
    return None


def _read_metadata(metadata_el) -> BookMetadata:
    metadata = BookMetadata()
    if metadata_el is None:
        return metadata

    calibre_values: dict[str, list[str]] = {}
    for el in metadata_el.iter():
        name = local_name(el.tag)
        attr = METADATA_FIELDS.get(name)
        if attr is not None:
            text = "".join(el.itertext()).strip()
            if text:
                getattr(metadata, attr).append(text)
        elif name == "meta":
            target = _CALIBRE_META.get((el.get("name") or "").strip().lower())
            content = (el.get("content") or "").strip()
            if target and content:
                calibre_values.setdefault(target, []).append(content)

    # Dublin Core values keep precedence over calibre's
    for attr, values in calibre_values.items():
        getattr(metadata, attr).extend(values)
    return metadata


def parse_package_bytes(data: bytes, path: str) -> PackageDocument:
    """Decode package document *data* stored at *path*."""
    root = parse_xml_bytes(data, path)

    package = PackageDocument(path=path)
    package.metadata = _read_metadata(_first_child(root, "metadata"))

    manifest_el = _first_child(root, "manifest")
    if manifest_el is not None:
        for item in _children(manifest_el, "item"):
            item_id = item.get("id")
            href = item.get("href")
            if item_id is None or href is None:
                continue
            # Later declarations override earlier ones
            package.manifest[item_id] = href

    spine_el = _first_child(root, "spine")
    if spine_el is not None:
        for itemref in _children(spine_el, "itemref"):
            idref = itemref.get("idref")
            if idref:
                package.spine.append(idref)

    logger.debug(
        "Parsed package %s: manifest=%d spine=%d",
        path, len(package.manifest), len(package.spine),
    )
    return package


def parse_package(archive: EpubArchive, path: str) -> PackageDocument:
    """Read and decode the package document stored at *path* in *archive*.

    Raises :class:`EntryNotFoundError` when the document is missing and
    :class:`DocumentParseError` when it is not well-formed.
    """
    return parse_package_bytes(archive.read_entry(path), path)


def resolve_spine(package: PackageDocument) -> List[str]:
    """Return the in-archive page paths in reading order.

    Spine ids with no manifest entry are skipped. Duplicated ids produce
    duplicated pages.

    Raises
    ------
    EmptySpineError
        If no spine id resolves to a page.
    """
    pages: List[str] = []
    for idref in package.spine:
        href = package.manifest.get(idref)
        if href is None:
            logger.debug("Spine id %r has no manifest entry; skipped", idref)
            continue
        page_path = resolve_href(package.path, href)
        if page_path:
            pages.append(page_path)

    if not pages:
        raise EmptySpineError("No pages found in spine", package.path)
    return pages
