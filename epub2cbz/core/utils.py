from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no disk I/O; they are shared by
the parsers and the archive assembler.
"""

import posixpath
from typing import Any

__all__ = [
    "normalize_member_path",
    "resolve_href",
    "local_name",
    "digit_count",
]


def normalize_member_path(path: str) -> str:
    """Return *path* as an archive member name.

    Forward slashes only, ``.``/``..`` segments collapsed and no leading
    separator.

    Examples:
        >>> normalize_member_path("OEBPS\\\\Text\\\\p1.xhtml")
        'OEBPS/Text/p1.xhtml'
        >>> normalize_member_path("/OEBPS/./images/../p1.xhtml")
        'OEBPS/p1.xhtml'
    """
    if not path:
        return ""
    cleaned = posixpath.normpath(path.replace("\\", "/"))
    cleaned = cleaned.lstrip("/")
    return "" if cleaned == "." else cleaned


def resolve_href(base_member: str, href: str) -> str:
    """Resolve *href* against the directory holding *base_member*.

    ``base_member`` is a member name (a file, not a directory), so
    ``resolve_href("OEBPS/content.opf", "Text/p1.xhtml")`` gives
    ``"OEBPS/Text/p1.xhtml"``.
    """
    base_dir = posixpath.dirname(base_member.replace("\\", "/"))
    return normalize_member_path(posixpath.join(base_dir, href.replace("\\", "/")))


def local_name(tag: Any) -> str:
    """Return the namespace-free local part of an element tag.

    Handles both Clark notation (``{ns}img``) and prefixed names as kept by
    the HTML parser (``svg:image``). Comments and processing instructions
    (whose tag is not a string) yield an empty string.
    """
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    if ":" in tag:
        tag = tag.rsplit(":", 1)[1]
    return tag.lower()


def digit_count(total: int) -> int:
    """Number of decimal digits in *total* (``0`` counts as one digit)."""
    return len(str(abs(total)))
