from __future__ import annotations

"""High-level conversion service for EPUB to CBZ transformation.

Entry-point for any front-end (CLI, batch runner, API) that needs to turn an
EPUB into a CBZ. The front-end resolves input and output paths; this service
runs the pipeline once and reports the outcome without raising.
"""

import logging
from pathlib import Path
from typing import Optional

from epub2cbz.config import ConfigManager
from epub2cbz.core.archive import EpubArchive
from epub2cbz.core.exceptions import Epub2CbzError, InvalidInputError, OutputWriteError
from epub2cbz.core.metadata import create_comic_info
from epub2cbz.core.models import ConversionResult, ConversionSettings
from epub2cbz.core.package_utils import PackageReport, write_cbz_package
from epub2cbz.core.parser import collect_page_images, parse_package, resolve_package_path, resolve_spine

logger = logging.getLogger(__name__)

__all__ = ["EPUB_EXTENSION", "CBZ_EXTENSION", "default_output_path", "ConversionService"]

EPUB_EXTENSION = ".epub"
CBZ_EXTENSION = ".cbz"


def default_output_path(input_path: str | Path) -> Path:
    """Return *input_path* with its ``.epub`` extension swapped for ``.cbz``."""
    return Path(input_path).with_suffix(CBZ_EXTENSION)


class ConversionService:
    """Business-logic façade converting one EPUB file at a time.

    Instances hold only immutable settings and can be shared across threads.
    """

    def __init__(self, settings: Optional[ConversionSettings] = None) -> None:
        if settings is None:
            settings = ConversionSettings.from_config(ConfigManager().get_conversion_config())
        self.settings = settings
        self.logger = logger

    # ---------------------------------------------------------------------
    # PUBLIC API
    # ---------------------------------------------------------------------
    def convert(self, input_path: str | Path, output_path: Optional[str | Path] = None) -> ConversionResult:
        """Convert *input_path* into the CBZ archive *output_path*.

        Args:
            input_path: EPUB file to convert
            output_path: Destination archive; defaults to the input path with
                a ``.cbz`` extension

        Returns:
            ConversionResult describing success or the error that aborted the
            conversion. ``partial_output`` is set when a failed conversion
            had already started writing the output archive.
        """
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path is not None else default_output_path(input_path)
        result = ConversionResult(input_path=input_path, output_path=output_path)

        self.logger.info("Convert: %s -> %s", input_path, output_path)
        try:
            report = self.convert_or_raise(input_path, output_path)
        except OutputWriteError as e:
            result.error = e
            result.partial_output = e.partial_output
            self.logger.error("Conversion failed for %s: %s", input_path, e)
            return result
        except Epub2CbzError as e:
            result.error = e
            self.logger.error("Conversion failed for %s: %s", input_path, e)
            return result
        except OSError as e:
            # I/O failure outside the archive reader and writer
            result.error = e
            self.logger.error("Conversion failed for %s: %s", input_path, e, exc_info=True)
            return result

        result.success = True
        result.pages_written = report.pages_written
        result.images_skipped = report.images_skipped
        result.comic_info_written = report.comic_info_written
        return result

    def convert_or_raise(self, input_path: str | Path, output_path: str | Path) -> PackageReport:
        """Run the pipeline, raising :class:`Epub2CbzError` on structural failure.

        Steps: container → package document → spine → page images → archive.
        The output file is only created once at least one page resolved.
        """
        input_path = Path(input_path)
        if input_path.suffix.lower() != EPUB_EXTENSION:
            raise InvalidInputError("Input file must have .epub extension", input_path)

        with EpubArchive(input_path) as archive:
            package_path = resolve_package_path(archive)
            package = parse_package(archive, package_path)
            pages = resolve_spine(package)
            self.logger.debug("Resolved %d pages from %s", len(pages), package_path)

            images = collect_page_images(archive, pages)
            self.logger.debug("Found %d page images", len(images))

            comic_info = create_comic_info(package.metadata)
            return write_cbz_package(archive, images, output_path, comic_info, self.settings)
