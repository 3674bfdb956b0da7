"""Top-level package for epub2cbz.

Front-ends (CLI, scripts) should only depend on the public API exposed here
rather than importing internal modules directly.
"""

from .core.models import ComicInfo, ConversionResult, ConversionSettings  # re-export for convenience
from .core.services import BatchConversionService, ConversionService

__all__: list[str] = [
    "ComicInfo",
    "ConversionResult",
    "ConversionSettings",
    "ConversionService",
    "BatchConversionService",
]
