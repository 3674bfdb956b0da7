from __future__ import annotations

"""Random-access reader for zip-based EPUB containers.

Entries are looked up by their exact stored name. Callers are expected to pass
names that are already normalized (forward slashes, no leading separator).
"""

import logging
import zipfile
import zlib
from pathlib import Path
from typing import IO, List, Optional

from epub2cbz.core.exceptions import ArchiveOpenError, EntryNotFoundError, EntryReadError

logger = logging.getLogger(__name__)

__all__ = ["EpubArchive"]


class EpubArchive:
    """Read-only handle on an EPUB (zip) archive.

    The handle keeps the archive open until :meth:`close` is called; use it
    as a context manager so resources are released even when reads fail::

        with EpubArchive(path) as archive:
            data = archive.read_entry("META-INF/container.xml")
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._zip: Optional[zipfile.ZipFile] = None
        try:
            self._zip = zipfile.ZipFile(self.path, "r")
        except FileNotFoundError as e:
            raise ArchiveOpenError("Archive not found", self.path, e) from e
        except PermissionError as e:
            raise ArchiveOpenError("Permission denied opening archive", self.path, e) from e
        except IsADirectoryError as e:
            raise ArchiveOpenError("Path is a directory, not an archive", self.path, e) from e
        except zipfile.BadZipFile as e:
            raise ArchiveOpenError(f"Not a valid zip archive: {e}", self.path, e) from e
        except OSError as e:
            raise ArchiveOpenError(f"Failed to open archive: {e}", self.path, e) from e
        logger.debug("Opened archive %s (%d entries)", self.path, len(self._zip.infolist()))

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------
    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying zip handle; safe to call more than once."""
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    @property
    def closed(self) -> bool:
        return self._zip is None

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------
    def list_entries(self) -> List[str]:
        """Return entry names in stored (directory) order."""
        return self._handle().namelist()

    def has_entry(self, name: str) -> bool:
        try:
            self._handle().getinfo(name)
        except KeyError:
            return False
        return True

    def entry_size(self, name: str) -> int:
        """Uncompressed size in bytes of entry *name*."""
        return self._info(name).file_size

    def open_entry(self, name: str) -> IO[bytes]:
        """Open entry *name* for binary reading.

        Raises
        ------
        EntryNotFoundError
            If no entry is stored under exactly *name*.
        """
        return self._handle().open(self._info(name), "r")

    def read_entry(self, name: str) -> bytes:
        """Return the full content of entry *name*.

        Raises
        ------
        EntryNotFoundError
            If no entry is stored under exactly *name*.
        EntryReadError
            If the entry is stored but its data is truncated or corrupt.
        """
        info = self._info(name)
        try:
            with self._handle().open(info, "r") as fh:
                return fh.read()
        except (OSError, EOFError, zipfile.BadZipFile, zlib.error, RuntimeError) as e:
            raise EntryReadError(name, self.path, e) from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _handle(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise ValueError(f"Archive is closed: {self.path}")
        return self._zip

    def _info(self, name: str) -> zipfile.ZipInfo:
        try:
            return self._handle().getinfo(name)
        except KeyError as e:
            raise EntryNotFoundError(name, self.path, e) from e
