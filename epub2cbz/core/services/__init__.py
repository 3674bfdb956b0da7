from __future__ import annotations

"""High-level orchestration services (single-file and batch conversion)."""

from .conversion_service import ConversionService, default_output_path  # noqa: F401
from .batch_service import BatchConversionService, find_epub_files, output_path_for  # noqa: F401

__all__: list[str] = [
    "ConversionService",
    "BatchConversionService",
    "default_output_path",
    "find_epub_files",
    "output_path_for",
]
