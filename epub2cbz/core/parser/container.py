from __future__ import annotations

"""Container descriptor (``META-INF/container.xml``) resolution."""

import logging

from lxml import etree as ET

from epub2cbz.core.archive import EpubArchive
from epub2cbz.core.exceptions import (
    ContainerMissingError,
    DocumentParseError,
    EntryNotFoundError,
    PackageReferenceMissingError,
)
from epub2cbz.core.utils import local_name, normalize_member_path

logger = logging.getLogger(__name__)

__all__ = ["CONTAINER_PATH", "parse_xml_bytes", "resolve_package_path"]

CONTAINER_PATH = "META-INF/container.xml"


def parse_xml_bytes(data: bytes, source: str) -> ET._Element:
    """Strictly parse *data* as XML and return the root element.

    Entity resolution and network access are disabled. Malformed input raises
    :class:`DocumentParseError` naming *source*.
    """
    parser = ET.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = ET.fromstring(data, parser)
    except ET.XMLSyntaxError as e:
        raise DocumentParseError(f"XML syntax error in {source}: {e}", source, e) from e
    if root is None:
        raise DocumentParseError(f"Empty XML document: {source}", source)
    return root


def resolve_package_path(archive: EpubArchive) -> str:
    """Return the in-archive path of the package document.

    The first ``rootfile`` element's ``full-path`` attribute wins.

    Raises
    ------
    ContainerMissingError
        The archive has no ``META-INF/container.xml``.
    DocumentParseError
        The container descriptor is not well-formed XML.
    PackageReferenceMissingError
        No ``rootfile`` element, or its ``full-path`` is empty.
    """
    try:
        data = archive.read_entry(CONTAINER_PATH)
    except EntryNotFoundError as e:
        raise ContainerMissingError(f"Missing {CONTAINER_PATH}", archive.path, e) from e

    root = parse_xml_bytes(data, CONTAINER_PATH)

    rootfile = None
    for el in root.iter():
        if local_name(el.tag) == "rootfile":
            rootfile = el
            break
    if rootfile is None:
        raise PackageReferenceMissingError("No rootfile element in container", archive.path)

    full_path = normalize_member_path((rootfile.get("full-path") or "").strip())
    if not full_path:
        raise PackageReferenceMissingError("Package document path is empty in container", archive.path)

    logger.debug("Package document: %s", full_path)
    return full_path
