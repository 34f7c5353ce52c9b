from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for directory imports.

FileStat carries the per-workbook outcome; ProcessingResult aggregates a whole
run and feeds the SUMMARY line.
"""

__all__ = [
    "FileStat",
    "ProcessingResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file import statistics."""
    file_name: str
    import_type: str | None
    status: str  # success/failed
    valid_rows: int
    error_rows: int
    unmatched_rows: int
    elapsed_seconds: float
    output_path: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of one directory import run."""
    success_files: int
    failed_files: int
    valid_rows: int
    error_rows: int
    unmatched_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None
    error_log_path: str | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files

    @property
    def has_problems(self) -> bool:
        return self.failed_files > 0 or self.error_rows > 0 or self.unmatched_rows > 0
