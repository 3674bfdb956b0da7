from __future__ import annotations

"""EPUB content-model parsers.

Container descriptor → package document → page documents, each step
producing the normalized in-archive paths the next step needs.
"""

from .container import resolve_package_path  # noqa: F401
from .package import parse_package, resolve_spine  # noqa: F401
from .page import collect_page_images, extract_page_image, find_first_image  # noqa: F401

__all__: list[str] = [
    "resolve_package_path",
    "parse_package",
    "resolve_spine",
    "collect_page_images",
    "extract_page_image",
    "find_first_image",
]
