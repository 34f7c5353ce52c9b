from __future__ import annotations

import json
import re

from finops_import.models.error_record import (
    EMPTY_SHEET,
    PROCESSING_ERROR,
    READ_ERROR,
    ROW_VALIDATION_ERROR,
    UNKNOWN_IMPORT_TYPE,
    UNMATCHED_TIMESHEET,
    ErrorRecord,
)

"""Error log line contract: exactly six keys, UTC 'Z' timestamp, UPPER_SNAKE error types."""

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$")
ERROR_TYPE_RE = re.compile(r"^[A-Z]+(_[A-Z]+)*$")


def test_error_types_are_upper_snake():
    for t in (ROW_VALIDATION_ERROR, UNMATCHED_TIMESHEET, EMPTY_SHEET, UNKNOWN_IMPORT_TYPE, READ_ERROR, PROCESSING_ERROR):
        assert ERROR_TYPE_RE.match(t)


def test_file_level_record_shape():
    line = ErrorRecord.create("a.xlsx", "<FILE_LEVEL>", -1, READ_ERROR, "cannot read workbook a.xlsx").to_json_line()
    data = json.loads(line)
    assert list(data) == ["timestamp", "file", "sheet", "row", "error_type", "message"]
    assert TIMESTAMP_RE.match(data["timestamp"])
    assert data["row"] == -1
    assert "\n" not in line


def test_non_ascii_kept_verbatim():
    line = ErrorRecord.create("ts.xlsx", "Timesheets", 4, UNMATCHED_TIMESHEET, "No assignment found for Zoë → Acme").to_json_line()
    assert "Zoë → Acme" in line
