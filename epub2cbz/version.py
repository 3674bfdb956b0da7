# -*- coding: utf-8 -*-
"""Application version detection utilities.

Provides a single public function, ``get_app_version()``, which determines the
current version using several strategies in order of stability.
"""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Optional

__all__ = ["DEFAULT_VERSION", "get_app_version"]

DEFAULT_VERSION = "v1.0.0"

_CACHED_VERSION: Optional[str] = None


def _with_prefix(text: str) -> str:
    return text if text.startswith("v") else f"v{text}"


def get_app_version() -> str:
    """Return the application version string (e.g., ``v1.2.3``).

    1. ``version.txt`` next to the package root (written by release builds)
    2. installed distribution metadata
    3. :data:`DEFAULT_VERSION`
    """
    global _CACHED_VERSION
    if _CACHED_VERSION:
        return _CACHED_VERSION

    version_file = Path(__file__).resolve().parent.parent / "version.txt"
    try:
        text = version_file.read_text(encoding="ascii", errors="ignore").strip()
    except OSError:
        text = ""
    if text:
        _CACHED_VERSION = _with_prefix(text)
        return _CACHED_VERSION

    try:
        _CACHED_VERSION = _with_prefix(metadata.version("epub2cbz"))
    except metadata.PackageNotFoundError:
        _CACHED_VERSION = DEFAULT_VERSION
    return _CACHED_VERSION
