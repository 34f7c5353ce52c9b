from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

Every row error, unmatched timesheet and file-level failure of an import run
becomes one ErrorRecord, serialized as one JSON line. ``row=-1`` is used for
file-level failures where no single row is responsible.
"""

__all__ = [
    "ErrorRecord",
    "ROW_VALIDATION_ERROR",
    "UNMATCHED_TIMESHEET",
    "EMPTY_SHEET",
    "UNKNOWN_IMPORT_TYPE",
    "READ_ERROR",
    "PROCESSING_ERROR",
]

ROW_VALIDATION_ERROR = "ROW_VALIDATION_ERROR"
UNMATCHED_TIMESHEET = "UNMATCHED_TIMESHEET"
EMPTY_SHEET = "EMPTY_SHEET"
UNKNOWN_IMPORT_TYPE = "UNKNOWN_IMPORT_TYPE"
READ_ERROR = "READ_ERROR"
PROCESSING_ERROR = "PROCESSING_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Workbook filename being imported
        sheet: Sheet name within the file
        row: Displayed row number. Use -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human-readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int  # 不明な場合 -1
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
