from __future__ import annotations

"""Conversion exception classes.

Structural errors make a conversion impossible and abort that single file.
Errors flagged ``recoverable`` concern one page or one image; the pipeline
logs and skips them without failing the conversion.
"""

from pathlib import Path
from typing import Optional

__all__ = [
    "Epub2CbzError",
    "InvalidInputError",
    "ArchiveOpenError",
    "EntryNotFoundError",
    "EntryReadError",
    "ContainerMissingError",
    "PackageReferenceMissingError",
    "DocumentParseError",
    "EmptySpineError",
    "PageReadError",
    "ImageMissingError",
    "OutputWriteError",
]


class Epub2CbzError(Exception):
    """Base exception for all conversion errors."""

    recoverable: bool = False

    def __init__(self, message: str, file_path: Optional[str | Path] = None,
                 cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.file_path = file_path
        self.cause = cause

    def __str__(self) -> str:
        if self.file_path:
            return f"{super().__str__()} [{self.file_path}]"
        return super().__str__()


class InvalidInputError(Epub2CbzError):
    """Raised when the input path does not carry the ``.epub`` extension."""


class ArchiveOpenError(Epub2CbzError):
    """Raised when the EPUB container cannot be opened as a zip archive.

    Covers missing files, permission problems and files that are not
    zip archives at all.
    """


class EntryNotFoundError(Epub2CbzError):
    """Raised when a named entry is not stored in the archive."""

    def __init__(self, entry_name: str, file_path: Optional[str | Path] = None,
                 cause: Optional[BaseException] = None) -> None:
        self.entry_name = entry_name
        super().__init__(f"Entry not found in archive: {entry_name}", file_path, cause)


class EntryReadError(Epub2CbzError):
    """Raised when a stored entry cannot be read or decompressed.

    Wraps truncated data, bad local headers, checksum mismatches and
    decompression failures reported by the zip layer.
    """

    def __init__(self, entry_name: str, file_path: Optional[str | Path] = None,
                 cause: Optional[BaseException] = None) -> None:
        self.entry_name = entry_name
        super().__init__(f"Error reading entry {entry_name}: {cause}", file_path, cause)


class ContainerMissingError(Epub2CbzError):
    """Raised when ``META-INF/container.xml`` is absent."""


class PackageReferenceMissingError(Epub2CbzError):
    """Raised when the container names no package document."""


class DocumentParseError(Epub2CbzError):
    """Raised when the container or package document is not well-formed XML."""


class EmptySpineError(Epub2CbzError):
    """Raised when no spine entry resolves to a page document."""


class PageReadError(Epub2CbzError):
    """Raised when a single page document cannot be read."""

    recoverable = True


class ImageMissingError(Epub2CbzError):
    """Raised when a page references an image that is not in the archive."""

    recoverable = True


class OutputWriteError(Epub2CbzError):
    """Raised when the output archive cannot be created or written.

    ``partial_output`` is true only when this run had already opened the
    output file, so a partially written archive may be left behind.
    """

    def __init__(self, message: str, file_path: Optional[str | Path] = None,
                 cause: Optional[BaseException] = None, partial_output: bool = False) -> None:
        super().__init__(message, file_path, cause)
        self.partial_output = partial_output
