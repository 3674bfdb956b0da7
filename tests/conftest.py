"""Test configuration and fixtures for epub2cbz.

Provides a small EPUB builder so every test can assemble exactly the archive
it needs in a temporary directory, plus resets of process-wide state
(configuration singleton, logging handlers) between tests.
"""

from __future__ import annotations

import logging
import struct
import sys
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from epub2cbz.config import ConfigManager
from epub2cbz.core.models import ConversionSettings

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

PAGE_XHTML = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>Page</title></head>
<body><div><img src="{src}" alt="page"/></div></body>
</html>"""

# Minimal payloads standing in for image bytes; content is copied verbatim
FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg"
FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-png"


def build_opf(
    manifest: Sequence[Tuple[str, str]],
    spine: Sequence[str],
    metadata: Optional[Dict[str, Iterable[str]]] = None,
    extra_metadata_xml: str = "",
) -> str:
    """Return package document XML for the given manifest, spine and DC fields."""
    meta_lines = []
    for name, values in (metadata or {}).items():
        for value in values:
            meta_lines.append(f"    <dc:{name}>{value}</dc:{name}>")
    items = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="application/xhtml+xml"/>'
        for item_id, href in manifest
    )
    refs = "\n".join(f'    <itemref idref="{idref}"/>' for idref in spine)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
{chr(10).join(meta_lines)}
{extra_metadata_xml}
  </metadata>
  <manifest>
{items}
  </manifest>
  <spine>
{refs}
  </spine>
</package>"""


def write_epub(path: Path, entries: Dict[str, bytes | str]) -> Path:
    """Write *entries* (name → content) into a zip archive at *path*."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def corrupt_entry_size(path: Path, name: str, size: int = 10 ** 6) -> Path:
    """Rewrite the central-directory sizes of entry *name* so reads run past EOF.

    Meant for archives written with ``ZIP_STORED`` (the :func:`write_epub`
    default); the archive still opens but reading the entry fails.
    """
    data = bytearray(path.read_bytes())
    encoded = name.encode("utf-8")
    offset = data.find(b"PK\x01\x02")
    while offset != -1:
        name_len = struct.unpack_from("<H", data, offset + 28)[0]
        if bytes(data[offset + 46:offset + 46 + name_len]) == encoded:
            struct.pack_into("<II", data, offset + 20, size, size)
            path.write_bytes(bytes(data))
            return path
        offset = data.find(b"PK\x01\x02", offset + 46 + name_len)
    raise KeyError(name)


def comic_entries(
    pages: int = 3,
    metadata: Optional[Dict[str, Iterable[str]]] = None,
    ext: str = ".jpg",
    opf_dir: str = "OEBPS",
) -> Dict[str, bytes | str]:
    """Return entries of a well-formed comic EPUB with one image per page.

    Layout: ``<opf_dir>/content.opf``, ``<opf_dir>/Text/pN.xhtml`` and
    ``<opf_dir>/Images/imgN<ext>``; pages reference ``../Images/imgN<ext>``.
    """
    prefix = f"{opf_dir}/" if opf_dir else ""
    opf_path = f"{prefix}content.opf"
    entries: Dict[str, bytes | str] = {
        "mimetype": "application/epub+zip",
        "META-INF/container.xml": CONTAINER_XML.format(opf_path=opf_path),
    }
    manifest = []
    spine = []
    for i in range(pages):
        manifest.append((f"p{i}", f"Text/p{i}.xhtml"))
        spine.append(f"p{i}")
        entries[f"{prefix}Text/p{i}.xhtml"] = PAGE_XHTML.format(src=f"../Images/img{i}{ext}")
        entries[f"{prefix}Images/img{i}{ext}"] = FAKE_JPEG + bytes([i])
    entries[opf_path] = build_opf(manifest, spine, metadata)
    return entries


@pytest.fixture
def make_epub(tmp_path):
    """Factory writing an EPUB into the test's temporary directory.

    ``make_epub(entries=None, name="book.epub", **comic_kwargs)``: when
    *entries* is omitted a comic EPUB is generated with :func:`comic_entries`.
    """
    def _make(entries: Optional[Dict[str, bytes | str]] = None, name: str = "book.epub", **kwargs) -> Path:
        if entries is None:
            entries = comic_entries(**kwargs)
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        return write_epub(path, entries)
    return _make


@pytest.fixture
def settings():
    """Default conversion settings, independent of any user configuration."""
    return ConversionSettings()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Point user config and log directories at empty temp dirs."""
    monkeypatch.setenv("EPUB2CBZ_CONFIG_DIR", str(tmp_path_factory.mktemp("config")))
    monkeypatch.setenv("EPUB2CBZ_LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    monkeypatch.delenv("EPUB2CBZ_DEBUG_MODULES", raising=False)
    ConfigManager._instance = None
    yield
    ConfigManager._instance = None


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo handler/propagation changes made by setup_logging()."""
    root = logging.getLogger()
    root_level = root.level
    root_handlers = list(root.handlers)
    yield
    root.setLevel(root_level)
    for handler in list(root.handlers):
        if handler not in root_handlers:
            root.removeHandler(handler)
    for handler in root_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    pkg_logger = logging.getLogger("epub2cbz")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)
