# -*- coding: utf-8 -*-
"""Command-line front end.

Usage: ``epub2cbz [-r] [-v] [-j N] [--no-comic-info] <file.epub | source_dir> [output_dir]``
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from epub2cbz.core.models import ConversionResult
from epub2cbz.core.services import BatchConversionService, ConversionService
from epub2cbz.core.services.conversion_service import CBZ_EXTENSION
from epub2cbz.logging_config import setup_logging
from epub2cbz.version import get_app_version

logger = logging.getLogger(__name__)

__all__ = ["build_argparser", "main"]

EXIT_OK = 0
EXIT_FAILURE = 1


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epub2cbz",
        description="Convert EPUB comics into CBZ archives.",
    )
    parser.add_argument("source", nargs="?", help="EPUB file or directory containing EPUB files")
    parser.add_argument("output", nargs="?", help="output directory, or .cbz path for a single file (default: next to each EPUB)")
    parser.add_argument("-r", "--recursive", action="store_true",
                        help="process subdirectories recursively")
    parser.add_argument("-v", "--version", action="store_true",
                        help="show version information")
    parser.add_argument("-j", "--jobs", type=int, default=None, metavar="N",
                        help="parallel conversions in directory mode (default: one per CPU)")
    parser.add_argument("--no-comic-info", action="store_true",
                        help="never write ComicInfo.xml")
    parser.add_argument("--verbose", action="store_true",
                        help="log progress and skipped pages to the console")
    return parser


def _report(result: ConversionResult) -> None:
    if result.success:
        print(f"Images extracted to {result.output_path}")
    else:
        print(f"ERROR processing {result.input_path}: {result.error}", file=sys.stderr)
        if result.partial_output:
            print(f"  partial output left at {result.output_path}", file=sys.stderr)


def _run_file(service: ConversionService, source: Path, output: Optional[Path]) -> int:
    # A single file may be given an explicit .cbz target or an output directory
    output_path = None
    if output is not None and output.suffix.lower() == CBZ_EXTENSION:
        output.parent.mkdir(parents=True, exist_ok=True)
        output_path = output
    elif output is not None:
        output.mkdir(parents=True, exist_ok=True)
        output_path = output / source.with_suffix(CBZ_EXTENSION).name
    result = service.convert(source, output_path)
    _report(result)
    return EXIT_OK if result.success else EXIT_FAILURE


def _run_directory(service: ConversionService, source: Path, output_dir: Optional[Path],
                   recursive: bool, jobs: Optional[int]) -> int:
    batch = BatchConversionService(service, max_workers=jobs)
    plan = batch.plan(source, output_dir, recursive)
    if not plan:
        where = "directory or subdirectories" if recursive else "directory"
        print(f"No .epub files found in {where}: {source}", file=sys.stderr)
        return EXIT_FAILURE

    for input_path, _ in plan:
        print(f"Processing {input_path}...")
    results: List[ConversionResult] = batch.run(plan, on_result=_report)
    failed = [r for r in results if not r.success]
    if failed:
        print(f"{len(failed)} of {len(results)} conversions failed", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the conversion(s) and return the process exit code."""
    parser = build_argparser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"epub2cbz version {get_app_version()}")
        return EXIT_OK
    if not args.source:
        parser.error("the following arguments are required: source")
    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")

    setup_logging(verbose=args.verbose)

    source = Path(args.source)
    output_dir = Path(args.output) if args.output else None
    if not source.exists():
        print(f"Error accessing source path: {source}", file=sys.stderr)
        return EXIT_FAILURE

    service = ConversionService()
    if args.no_comic_info:
        service.settings = replace(service.settings, write_comic_info=False)

    try:
        if source.is_dir():
            return _run_directory(service, source, output_dir, args.recursive, args.jobs)
        return _run_file(service, source, output_dir)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        logger.debug("===== epub2cbz terminated =====")


if __name__ == "__main__":
    sys.exit(main())
