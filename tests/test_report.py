import io
from pathlib import Path

import pytest

from imgtool.report import Reporter, build_report, format_file_size, format_reduction
from imgtool.results import BatchOutcome, BatchTotals, FileFailure, ProcessResult
from imgtool.settings import Dimensions


def _result(name="a.png", out="a.webp", src=2048, dst=512):
    return ProcessResult(
        input_path=Path("in") / name,
        output_path=Path("out") / out,
        input_size=src,
        output_size=dst,
        original_dimensions=Dimensions(100, 80),
        new_dimensions=Dimensions(50, 40),
    )


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0.00 B"),
        (1023, "1023.00 B"),
        (1536, "1.50 KB"),
        (5 * 1024 * 1024, "5.00 MB"),
        (3 * 1024 ** 4, "3072.00 GB"),
    ],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_reduction():
    assert format_reduction(_result().reduction_percent) == "75.0"
    assert format_reduction(_result(src=100, dst=150).reduction_percent) == "-50.0"
    assert _result(src=0, dst=10).reduction_percent == 0.0


def test_totals_accumulate():
    t = BatchTotals()
    t.add(_result(src=1000, dst=400))
    t.add(_result(src=1000, dst=600))
    assert (t.file_count, t.total_input_size, t.total_output_size) == (2, 2000, 1000)
    assert t.reduction_percent == 50.0


def test_file_done_line():
    out = io.StringIO()
    Reporter(out=out).file_done(_result())
    assert out.getvalue().strip() == "✔ a.png → a.webp (2.00 KB → 512.00 B, 75.0% reduction)"


def test_batch_done_summary_and_failures():
    out, err = io.StringIO(), io.StringIO()
    outcome = BatchOutcome()
    r = _result()
    outcome.results.append(r)
    outcome.totals.add(r)
    outcome.failures.append(FileFailure(Path("in/bad.png"), "Failed to process bad.png: boom"))

    Reporter(out=out, err=err).batch_done(outcome)

    assert "Processed 1 files, Total: 2.00 KB → 512.00 B, Overall Reduction: 75.0%" in out.getvalue()
    assert "1 file(s) failed" in err.getvalue()
    assert "Failed to process bad.png: boom" in err.getvalue()


def test_build_report():
    outcome = BatchOutcome()
    r = _result()
    outcome.results.append(r)
    outcome.totals.add(r)
    outcome.failures.append(FileFailure(Path("in/bad.png"), "boom"))

    report = build_report(outcome)

    assert report.created_utc.endswith("Z")
    assert report.summary == {
        "processed": 1,
        "failed": 1,
        "total_input_size": 2048,
        "total_output_size": 512,
        "reduction_percent": 75.0,
    }
    assert [f.error for f in report.files] == [None, "boom"]
    assert report.files[0].original_dimensions == "100x80"
