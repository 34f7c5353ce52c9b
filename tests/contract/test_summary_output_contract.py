from __future__ import annotations

import re
from datetime import UTC, datetime

from finops_import.models.processing_result import ProcessingResult
from finops_import.services.summary import render_summary_line

"""SUMMARY line format contract: one line, fixed key order, numeric values."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+files=([0-9]+)/(\1)\s+success=([0-9]+)\s+failed=([0-9]+)\s+"
    r"valid_rows=([0-9]+)\s+error_rows=([0-9]+)\s+unmatched=([0-9]+)\s+"
    r"elapsed_sec=([0-9]+\.?[0-9]*)$"
)


def test_summary_pattern_example_line():
    line = "SUMMARY files=2/2 success=1 failed=1 valid_rows=40 error_rows=3 unmatched=2 elapsed_sec=0.84"
    assert SUMMARY_PATTERN.match(line)


def test_rendered_lines_match_contract():
    t = datetime(2024, 1, 1, tzinfo=UTC)
    for elapsed in (0.0, 0.0004, 1.0, 12.3456):
        r = ProcessingResult(
            success_files=1, failed_files=0, valid_rows=5, error_rows=0, unmatched_rows=0,
            start_time=t, end_time=t, elapsed_seconds=elapsed,
        )
        m = SUMMARY_PATTERN.match(render_summary_line(r))
        assert m, render_summary_line(r)
        assert m.group(1) == "1"


def test_files_total_is_success_plus_failed():
    t = datetime(2024, 1, 1, tzinfo=UTC)
    r = ProcessingResult(
        success_files=3, failed_files=2, valid_rows=0, error_rows=0, unmatched_rows=0,
        start_time=t, end_time=t, elapsed_seconds=1.0,
    )
    m = SUMMARY_PATTERN.match(render_summary_line(r))
    assert int(m.group(1)) == int(m.group(3)) + int(m.group(4)) == 5
