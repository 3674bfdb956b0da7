from __future__ import annotations

"""Batch conversion of many EPUB files.

Conversions of independent files run in parallel on a thread pool whose size
is the admission bound (one worker per CPU by default). Each file's result is
reported on its own; one failure never cancels or affects another file.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from epub2cbz.core.models import ConversionResult
from epub2cbz.core.services.conversion_service import (
    CBZ_EXTENSION,
    EPUB_EXTENSION,
    ConversionService,
)

logger = logging.getLogger(__name__)

__all__ = ["find_epub_files", "output_path_for", "BatchConversionService"]

ConversionJob = Tuple[Path, Path]


def find_epub_files(source_dir: str | Path, recursive: bool = False) -> List[Path]:
    """Return the ``.epub`` files in *source_dir*, sorted by path.

    Only the top level is scanned unless *recursive* is set. The extension
    match is case-insensitive.
    """
    source_dir = Path(source_dir)
    candidates = source_dir.rglob("*") if recursive else source_dir.iterdir()
    return sorted(
        p for p in candidates
        if p.is_file() and p.suffix.lower() == EPUB_EXTENSION
    )


def output_path_for(epub_path: str | Path, source_dir: str | Path,
                    output_dir: Optional[str | Path] = None, recursive: bool = False) -> Path:
    """Derive the CBZ path for *epub_path*.

    Without *output_dir* the CBZ sits next to the EPUB. With it, the CBZ goes
    into *output_dir*, mirroring the subdirectory below *source_dir* only in
    recursive mode.
    """
    epub_path = Path(epub_path)
    name = epub_path.with_suffix(CBZ_EXTENSION).name
    if output_dir is None:
        return epub_path.with_suffix(CBZ_EXTENSION)
    output_dir = Path(output_dir)
    if recursive:
        relative_parent = epub_path.parent.relative_to(Path(source_dir))
        return output_dir / relative_parent / name
    return output_dir / name


class BatchConversionService:
    """Runs :class:`ConversionService` over many files with bounded parallelism."""

    def __init__(self, conversion_service: Optional[ConversionService] = None,
                 max_workers: Optional[int] = None) -> None:
        self.conversion_service = conversion_service or ConversionService()
        if not max_workers:
            max_workers = self.conversion_service.settings.max_workers or os.cpu_count() or 1
        self.max_workers = max_workers

    def plan(self, source_dir: str | Path, output_dir: Optional[str | Path] = None,
             recursive: bool = False) -> List[ConversionJob]:
        """Return ``(input, output)`` pairs for every EPUB below *source_dir*."""
        return [
            (epub, output_path_for(epub, source_dir, output_dir, recursive))
            for epub in find_epub_files(source_dir, recursive)
        ]

    def run(self, jobs: Sequence[ConversionJob],
            on_result: Optional[Callable[[ConversionResult], None]] = None) -> List[ConversionResult]:
        """Convert every job and return the results in job order.

        *on_result* is called from the calling thread as each conversion
        finishes, in completion order.
        """
        results: List[Optional[ConversionResult]] = [None] * len(jobs)
        if not jobs:
            return []

        logger.info("Batch: %d files, %d workers", len(jobs), self.max_workers)
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="epub2cbz") as executor:
            futures = {
                executor.submit(self._convert_job, input_path, output_path): index
                for index, (input_path, output_path) in enumerate(jobs)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    # Unexpected bug in one conversion; record it against that file only
                    input_path, output_path = jobs[index]
                    logger.error("Unexpected error converting %s", input_path, exc_info=True)
                    result = ConversionResult(input_path=input_path, output_path=output_path, error=e)
                results[index] = result
                if on_result is not None:
                    on_result(result)

        failed = sum(1 for r in results if r is not None and not r.success)
        logger.info("Batch finished: %d ok, %d failed", len(jobs) - failed, failed)
        return [r for r in results if r is not None]

    def _convert_job(self, input_path: Path, output_path: Path) -> ConversionResult:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Error creating output directory for %s: %s", input_path, e)
            return ConversionResult(input_path=input_path, output_path=output_path, error=e)
        return self.conversion_service.convert(input_path, output_path)
