from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .settings import Dimensions


def reduction_percent(input_size: int, output_size: int) -> float:
    """Percentage saved; negative when the output grew."""
    if input_size <= 0:
        return 0.0
    return (input_size - output_size) / input_size * 100.0


@dataclass(frozen=True)
class ProcessResult:
    """
    Output of converting a single image.

    Only produced for files that were written successfully.
    """
    input_path: Path
    output_path: Path
    input_size: int
    output_size: int
    original_dimensions: Dimensions
    new_dimensions: Dimensions

    @property
    def reduction_percent(self) -> float:
        return reduction_percent(self.input_size, self.output_size)


@dataclass(frozen=True)
class FileFailure:
    input_path: Path
    message: str


@dataclass
class BatchTotals:
    """Running totals for one batch. Only ever grows."""
    total_input_size: int = 0
    total_output_size: int = 0
    file_count: int = 0

    def add(self, result: ProcessResult) -> None:
        self.total_input_size += result.input_size
        self.total_output_size += result.output_size
        self.file_count += 1

    @property
    def reduction_percent(self) -> float:
        return reduction_percent(self.total_input_size, self.total_output_size)


@dataclass
class BatchOutcome:
    results: List[ProcessResult] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    totals: BatchTotals = field(default_factory=BatchTotals)

    @property
    def ok(self) -> bool:
        return not self.failures
