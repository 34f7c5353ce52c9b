from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ROW_VALIDATION_ERROR, UNMATCHED_TIMESHEET, ErrorRecord
from ..models.records import RowError
from ..models.assignment import UnmatchedTimesheet

"""Error log buffering.

- JSON Lines, fixed schema (no extra keys)
- one ``logs/errors-YYYYMMDD-HHMMSS.log`` file (UTC) per run, created on first flush
- records are buffered and written once per run
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush appends JSON Lines.

    Not thread-safe: a directory run processes files serially.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def add_row_errors(self, file: str, sheet: str, errors: Iterable[RowError]) -> None:
        for e in errors:
            self.append(ErrorRecord.create(file, sheet, e.row_number, ROW_VALIDATION_ERROR, e.message))

    def add_unmatched(self, file: str, sheet: str, unmatched: Iterable[UnmatchedTimesheet]) -> None:
        for u in unmatched:
            self.append(ErrorRecord.create(file, sheet, u.row.row_number, UNMATCHED_TIMESHEET, u.reason))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None if nothing was ever written."""
        if not self._records:
            return self._file_path
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
