from __future__ import annotations

from datetime import UTC, datetime

import pytest

from finops_import.models.processing_result import ProcessingResult
from finops_import.services.summary import format_seconds, render_summary_line


def _result(**overrides) -> ProcessingResult:
    t = datetime(2024, 1, 1, tzinfo=UTC)
    values = dict(
        success_files=2, failed_files=1, valid_rows=10, error_rows=2, unmatched_rows=1,
        start_time=t, end_time=t, elapsed_seconds=1.5,
    )
    values.update(overrides)
    return ProcessingResult(**values)


def test_render_summary_line():
    assert render_summary_line(_result()) == (
        "SUMMARY files=3/3 success=2 failed=1 valid_rows=10 error_rows=2 unmatched=1 elapsed_sec=1.5"
    )


def test_render_summary_line_empty_run():
    line = render_summary_line(_result(success_files=0, failed_files=0, valid_rows=0, error_rows=0,
                                       unmatched_rows=0, elapsed_seconds=0.0))
    assert line == "SUMMARY files=0/0 success=0 failed=0 valid_rows=0 error_rows=0 unmatched=0 elapsed_sec=0"


@pytest.mark.parametrize(
    "seconds,text",
    [(0, "0"), (2.0, "2"), (0.004, "0.004"), (0.0000004, "0"), (1.23456, "1.235"), (12.5, "12.5")],
)
def test_format_seconds(seconds, text):
    assert format_seconds(seconds) == text


def test_has_problems():
    assert _result().has_problems
    assert not _result(failed_files=0, error_rows=0, unmatched_rows=0).has_problems
