from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .batch import process_input_path
from .errors import ImageToolError
from .report import Reporter, build_report, save_report_json
from .settings import (
    APP_NAME,
    DEFAULT_FORMAT,
    DEFAULT_OUTPUT,
    DEFAULT_QUALITY,
    SUPPORTED_FORMATS,
    VERSION,
    build_options,
)


logger = logging.getLogger(__name__)

SHORT_USAGE = f"""
Usage: {APP_NAME} -i <input> [options]

Options:
  -i, --input      Input file or directory path (required)
  -o, --output     Output path (default: {DEFAULT_OUTPUT})
  -d, --dimension  Resize dimension (e.g., "100x100" or "100" for square)
  -q, --quality    Output quality (1-100, default: {DEFAULT_QUALITY})
  -f, --format     Output format ({"|".join(SUPPORTED_FORMATS)}, default: {DEFAULT_FORMAT})
  -h, --help       Show this help message
  -v, --version    Show version
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog=APP_NAME,
        description="CLI tool for image manipulation",
    )
    p.add_argument("-V", "-v", "--version", action="version", version=f"{APP_NAME} {VERSION}")

    # Paths
    p.add_argument("-i", "--input", default=None, help="Input image file or directory path")
    p.add_argument(
        "-o",
        "--output",
        default=DEFAULT_OUTPUT,
        help=f"Output directory, or output filename for a single input file (default: {DEFAULT_OUTPUT})",
    )

    # Encoding; validated by build_options() so the messages stay ours.
    p.add_argument(
        "-f",
        "--format",
        default=DEFAULT_FORMAT,
        help=f"Output image format ({'|'.join(SUPPORTED_FORMATS)}, default: {DEFAULT_FORMAT})",
    )
    p.add_argument("-d", "--dimension", default=None, help="Resize dimension (e.g. '100x100' or '100' for square)")
    p.add_argument("-q", "--quality", default=str(DEFAULT_QUALITY), help=f"Output quality (1-100, default: {DEFAULT_QUALITY})")

    # Run behaviour
    p.add_argument("--fail-fast", action="store_true", help="Stop the whole batch at the first file that fails")
    p.add_argument("--report", default=None, help="Write a JSON report of the run to this path")
    p.add_argument("--verbose", action="store_true", help="Show debug logging")

    return p


class _ProgressBar:
    """tqdm bar for directory runs, created on the first progress_callback call."""

    def __init__(self) -> None:
        self._bar: Optional[tqdm] = None

    def update(self, idx: int, total: int) -> None:
        if self._bar is None:
            # disable=None turns the bar off when stderr is not a terminal.
            self._bar = tqdm(total=total, desc="Processing", unit="img", file=sys.stderr, leave=False, disable=None)
        self._bar.update(idx - self._bar.n)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        print(SHORT_USAGE)
        return 0

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.input:
        print("Input path is required", file=sys.stderr)
        return 1

    reporter = Reporter()
    progress = _ProgressBar()

    try:
        options = build_options(
            args.format,
            args.quality,
            dimension=args.dimension,
            fail_fast=bool(args.fail_fast),
        )
        outcome = process_input_path(
            Path(args.input).resolve(),
            Path(args.output).resolve(),
            options,
            reporter=reporter,
            progress_callback=progress.update,
        )
    except ImageToolError as e:
        logger.debug("run aborted", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("unexpected error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        progress.close()

    if args.report:
        report_path = Path(args.report)
        try:
            save_report_json(build_report(outcome), report_path)
        except OSError as e:
            logger.debug("report not written", exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
        reporter.info(f"Report written: {report_path}")

    if not outcome.ok:
        reporter.fail("Optimization finished with errors.")
        return 1

    reporter.succeed("Optimization complete.")
    return 0
