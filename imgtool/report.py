from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, TextIO

from tqdm import tqdm

from .results import BatchOutcome, ProcessResult


SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """1536 -> '1.50 KB'"""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {SIZE_UNITS[unit]}"


def format_reduction(percent: float) -> str:
    return f"{percent:.1f}"


class Reporter:
    """
    User-facing notifications for a run.

    Success and info lines go to stdout, warnings and failures to stderr.
    Streams are looked up at call time unless given explicitly. Lines go
    through tqdm.write so they print above an active progress bar.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> None:
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def info(self, message: str) -> None:
        tqdm.write(message, file=self.out)

    def succeed(self, message: str) -> None:
        tqdm.write(f"✔ {message}", file=self.out)

    def warn(self, message: str) -> None:
        tqdm.write(f"⚠ {message}", file=self.err)

    def fail(self, message: str) -> None:
        tqdm.write(f"✖ {message}", file=self.err)

    def file_done(self, r: ProcessResult) -> None:
        self.succeed(
            f"{r.input_path.name} → {r.output_path.name} "
            f"({format_file_size(r.input_size)} → {format_file_size(r.output_size)}, "
            f"{format_reduction(r.reduction_percent)}% reduction)"
        )

    def batch_done(self, outcome: BatchOutcome) -> None:
        t = outcome.totals
        if t.file_count > 0:
            self.succeed(
                f"Processed {t.file_count} files, "
                f"Total: {format_file_size(t.total_input_size)} → {format_file_size(t.total_output_size)}, "
                f"Overall Reduction: {format_reduction(t.reduction_percent)}%"
            )
        else:
            self.fail("No files were successfully processed")

        if outcome.failures:
            self.fail(f"{len(outcome.failures)} file(s) failed:")
            for f in outcome.failures:
                tqdm.write(f"  {f.input_path}: {f.message}", file=self.err)


@dataclass(frozen=True)
class FileReport:
    input_path: str
    output_path: Optional[str]
    input_size: int
    output_size: int
    reduction_percent: float
    original_dimensions: Optional[str]
    new_dimensions: Optional[str]
    error: Optional[str]


@dataclass(frozen=True)
class BatchReport:
    created_utc: str
    summary: dict
    files: List[FileReport]


def build_report(outcome: BatchOutcome) -> BatchReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for r in outcome.results:
        files.append(
            FileReport(
                input_path=str(r.input_path),
                output_path=str(r.output_path),
                input_size=r.input_size,
                output_size=r.output_size,
                reduction_percent=round(r.reduction_percent, 2),
                original_dimensions=str(r.original_dimensions),
                new_dimensions=str(r.new_dimensions),
                error=None,
            )
        )
    for f in outcome.failures:
        files.append(
            FileReport(
                input_path=str(f.input_path),
                output_path=None,
                input_size=0,
                output_size=0,
                reduction_percent=0.0,
                original_dimensions=None,
                new_dimensions=None,
                error=f.message,
            )
        )

    t = outcome.totals
    summary_dict = {
        "processed": t.file_count,
        "failed": len(outcome.failures),
        "total_input_size": t.total_input_size,
        "total_output_size": t.total_output_size,
        "reduction_percent": round(t.reduction_percent, 2),
    }

    return BatchReport(created_utc=created_utc, summary=summary_dict, files=files)


def save_report_json(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)
