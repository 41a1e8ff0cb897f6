from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterator, Optional

from .engine import ImageEngine, process_image
from .errors import ConfigurationError, InputNotFound, TransformFailure
from .paths import has_extension, output_path_for
from .report import Reporter
from .results import BatchOutcome, FileFailure
from .settings import SUPPORTED_INPUT_EXTS, ProcessOptions


logger = logging.getLogger(__name__)


def iter_images(input_dir: Path, exclude_dir: Optional[Path] = None) -> Iterator[Path]:
    """
    Yield supported images below `input_dir`, recursively, in filesystem order.

    exclude_dir:
        Files inside this directory are skipped, so an output directory
        nested in the input is never fed back into the batch.
    """
    exclude_resolved = exclude_dir.resolve() if exclude_dir else None

    for f in Path(input_dir).rglob("*"):
        if not f.is_file():
            continue
        if f.suffix.lower() not in SUPPORTED_INPUT_EXTS:
            continue
        if exclude_resolved and f.resolve().is_relative_to(exclude_resolved):
            continue
        yield f


def process_input_path(
    input_path: Path,
    output_base: Path,
    options: ProcessOptions,
    engine: Optional[ImageEngine] = None,
    reporter: Optional[Reporter] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> BatchOutcome:
    """
    Convert a single file or every supported image under a directory.

    Failures of individual files are collected in the outcome unless
    `options.fail_fast` is set, in which case the first one is raised.
    """
    input_path = Path(input_path)
    output_base = Path(output_base)
    reporter = reporter or Reporter()
    outcome = BatchOutcome()

    try:
        input_path.stat()
    except OSError as e:
        raise InputNotFound(str(e)) from e

    if input_path.is_file():
        out_path = output_path_for(input_path, output_base, options.format)
        _convert_one(input_path, out_path, options, engine, reporter, outcome)
        return outcome

    if not input_path.is_dir():
        raise InputNotFound(f"Not a regular file or directory: {input_path}")

    if has_extension(output_base):
        raise ConfigurationError("Cannot specify output filename when input is a directory")

    reporter.info(f"Scanning directory: {input_path}")
    # Only an output directory strictly below the input can hold earlier results.
    out_resolved = output_base.resolve()
    in_resolved = input_path.resolve()
    exclude = output_base if out_resolved != in_resolved and out_resolved.is_relative_to(in_resolved) else None
    files = list(iter_images(input_path, exclude_dir=exclude))

    if not files:
        reporter.warn("No supported image files found")
        reporter.info(f"\nSupported formats: {', '.join(SUPPORTED_INPUT_EXTS)}")
        return outcome

    total = len(files)
    logger.debug("found %d image(s) under %s", total, input_path)

    for idx, f in enumerate(files, start=1):
        if progress_callback:
            progress_callback(idx, total)

        out_path = output_path_for(f, output_base, options.format, relative_to=input_path)
        _convert_one(f, out_path, options, engine, reporter, outcome)

    reporter.batch_done(outcome)
    return outcome


def _convert_one(
    input_path: Path,
    output_path: Path,
    options: ProcessOptions,
    engine: Optional[ImageEngine],
    reporter: Reporter,
    outcome: BatchOutcome,
) -> None:
    try:
        r = process_image(input_path, output_path, options, engine=engine, reporter=reporter)
    except TransformFailure as e:
        if options.fail_fast:
            raise
        logger.debug("isolated failure for %s", input_path, exc_info=True)
        reporter.fail(str(e))
        outcome.failures.append(FileFailure(input_path=input_path, message=str(e)))
        return

    outcome.results.append(r)
    outcome.totals.add(r)
