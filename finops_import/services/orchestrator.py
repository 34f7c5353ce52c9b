from __future__ import annotations

import fnmatch
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..errors import EmptySheetError, ImportBatchError
from ..excel.reader import WorkbookReadError, read_cell_matrix
from ..excel.templates import header_mismatches
from ..logging.error_log import ErrorLogBuffer
from ..models.assignment import Assignment, MatchResult, TimesheetFinancials
from ..models.config_models import ImportConfig
from ..models.enums import ImportType
from ..models.error_record import (
    EMPTY_SHEET,
    PROCESSING_ERROR,
    READ_ERROR,
    UNKNOWN_IMPORT_TYPE,
    ErrorRecord,
)
from ..models.processing_result import FileStat, ProcessingResult
from ..models.records import CellMatrix, ImportResult, record_to_dict
from ..parsing.cells import is_blank_row
from ..parsing.rows import DEFAULT_SUBSCRIPTION_CATEGORY, parse
from .currency import ExchangeRateCache
from .financials import compute_timesheet_financials
from .matching import match_timesheets
from .progress import ProgressTracker

"""Import orchestration.

``run_import`` is the single-batch pipeline used by every entry point::

    cell matrix -> parse -> (timesheets) match -> financials -> ImportOutcome

``process_directory`` drives ``run_import`` over a directory of workbooks for
the CLI: one workbook = one batch, first sheet only, import type resolved from
the ``file_types`` glob patterns. A failing workbook is recorded and the run
continues with the next one. Valid records are written as JSON Lines to the
output directory; persisting them elsewhere is up to the caller.
"""

__all__ = [
    "ImportOutcome",
    "ProcessingError",
    "run_import",
    "scan_excel_files",
    "resolve_import_type",
    "process_directory",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal error that prevents a directory run from starting."""
    pass


@dataclass
class ImportOutcome:
    """Result of one batch.

    ``match`` and ``timesheets`` are only populated for timesheet imports;
    ``timesheets`` holds the persistence-ready records in row order.
    """
    import_type: ImportType
    result: ImportResult
    match: MatchResult | None = None
    timesheets: list[TimesheetFinancials] = field(default_factory=list)

    @property
    def unmatched_count(self) -> int:
        return len(self.match.unmatched) if self.match else 0

    def persistable(self) -> list[dict]:
        """Records ready for the persistence layer, in row order."""
        if self.import_type is ImportType.TIMESHEETS:
            return [record_to_dict(t) for t in self.timesheets]
        return [record_to_dict(r) for r in self.result.valid]


def run_import(
    import_type: ImportType | str,
    matrix: CellMatrix,
    user_id: str,
    *,
    assignments: Sequence[Assignment] = (),
    rates: ExchangeRateCache | None = None,
    strict_duplicates: bool = False,
    default_subscription_category: str = DEFAULT_SUBSCRIPTION_CATEGORY,
) -> ImportOutcome:
    """Parse one cell matrix and, for timesheets, match and price it.

    Raises:
        EmptySheetError: no rows, or only blank rows below the header.
        ImportBatchError: timesheet import without a rate table.
    """
    kind = ImportType.parse(import_type)
    if not matrix or all(is_blank_row(r) for r in matrix[1:]):
        raise EmptySheetError("Excel file is empty or has no data rows")
    pricing: ExchangeRateCache | None = None
    if kind is ImportType.TIMESHEETS:
        if rates is None:
            raise ImportBatchError("timesheet import requires an exchange rate table")
        pricing = rates

    for problem in header_mismatches(kind, list(matrix[0] or [])):
        logger.warning("%s header %s", kind.value, problem)

    result = parse(kind, matrix, user_id, default_subscription_category=default_subscription_category)
    logger.debug("%s parsed valid=%d errors=%d", kind.value, len(result.valid), len(result.errors))
    outcome = ImportOutcome(import_type=kind, result=result)
    if pricing is None:
        return outcome

    outcome.match = match_timesheets(result.valid, assignments, strict_duplicates=strict_duplicates)
    outcome.timesheets = compute_timesheet_financials(outcome.match.matched, pricing)
    return outcome


def scan_excel_files(directory: Path) -> list[Path]:
    """Return the .xlsx files of ``directory`` (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        # Excel のロックファイル (~$foo.xlsx) は除外
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def resolve_import_type(file_name: str, patterns: dict[str, ImportType]) -> ImportType | None:
    """First glob pattern (config order) matching ``file_name`` wins."""
    for pattern, kind in patterns.items():
        if fnmatch.fnmatch(file_name.lower(), pattern.lower()):
            return kind
    return None


def _write_jsonl(path: Path, records: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for rec in records:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")


def _failed(file_path: Path, kind: ImportType | None, started: datetime) -> FileStat:
    return FileStat(
        file_name=file_path.name,
        import_type=kind.value if kind else None,
        status="failed",
        valid_rows=0,
        error_rows=0,
        unmatched_rows=0,
        elapsed_seconds=(datetime.now(UTC) - started).total_seconds(),
    )


def _process_single_file(
    file_path: Path,
    config: ImportConfig,
    rates: ExchangeRateCache,
    assignments: Sequence[Assignment],
    error_log: ErrorLogBuffer,
) -> FileStat:
    started = datetime.now(UTC)
    kind = resolve_import_type(file_path.name, config.file_types)
    if kind is None:
        logger.error("%s: no file_types pattern matches", file_path.name)
        error_log.append(
            ErrorRecord.create(file_path.name, "<FILE_LEVEL>", -1, UNKNOWN_IMPORT_TYPE,
                               "file name matches no configured import type")
        )
        return _failed(file_path, None, started)

    try:
        sheet, matrix = read_cell_matrix(file_path)
    except WorkbookReadError as e:
        logger.error("%s: %s", file_path.name, e)
        error_log.append(ErrorRecord.create(file_path.name, "<FILE_LEVEL>", -1, READ_ERROR, str(e)))
        return _failed(file_path, kind, started)

    try:
        outcome = run_import(
            kind,
            matrix,
            config.user_id,
            assignments=assignments,
            rates=rates,
            strict_duplicates=config.strict_duplicates,
            default_subscription_category=config.default_subscription_category,
        )
    except EmptySheetError as e:
        logger.error("%s [%s]: %s", file_path.name, sheet, e)
        error_log.append(ErrorRecord.create(file_path.name, sheet, -1, EMPTY_SHEET, str(e)))
        return _failed(file_path, kind, started)
    except ImportBatchError as e:
        logger.error("%s [%s]: %s", file_path.name, sheet, e)
        error_log.append(ErrorRecord.create(file_path.name, sheet, -1, PROCESSING_ERROR, str(e)))
        return _failed(file_path, kind, started)

    result = outcome.result
    error_log.add_row_errors(file_path.name, sheet, result.errors)
    for e in result.errors:
        logger.warning("%s [%s] %s", file_path.name, sheet, e.message)
    if outcome.match is not None:
        error_log.add_unmatched(file_path.name, sheet, outcome.match.unmatched)
        for u in outcome.match.unmatched:
            logger.warning("%s [%s] Row %d: %s", file_path.name, sheet, u.row.row_number, u.reason)

    records = outcome.persistable()
    out_path = Path(config.output_directory) / f"{file_path.stem}.{kind.value}.jsonl"
    _write_jsonl(out_path, records)
    logger.info(
        "%s: %s valid=%d errors=%d unmatched=%d -> %s",
        file_path.name, kind.value, len(records), len(result.errors), outcome.unmatched_count, out_path,
    )
    return FileStat(
        file_name=file_path.name,
        import_type=kind.value,
        status="success",
        valid_rows=len(records),
        error_rows=len(result.errors),
        unmatched_rows=outcome.unmatched_count,
        elapsed_seconds=(datetime.now(UTC) - started).total_seconds(),
        output_path=str(out_path),
    )


def process_directory(
    config: ImportConfig,
    rates: ExchangeRateCache,
    assignments: Sequence[Assignment] = (),
    *,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Import every workbook of ``config.source_directory``.

    Raises:
        ProcessingError: the source directory is missing or unreadable.
    """
    start_time = datetime.now(UTC)
    error_log = error_log or ErrorLogBuffer()
    file_paths = scan_excel_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    with ProgressTracker(len(file_paths), description="Importing") as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            try:
                stat = _process_single_file(file_path, config, rates, assignments, error_log)
            except Exception as e:
                # 想定外の失敗でも次のファイルへ
                logger.exception("%s: unexpected failure", file_path.name)
                error_log.append(
                    ErrorRecord.create(file_path.name, "<FILE_LEVEL>", -1, PROCESSING_ERROR, str(e))
                )
                stat = _failed(file_path, None, datetime.now(UTC))
            file_stats.append(stat)
            progress.finish_file(success=stat.status == "success")
            progress.set_postfix(
                ok=sum(1 for s in file_stats if s.status == "success"),
                rows=sum(s.valid_rows for s in file_stats),
            )

    log_path = error_log.flush()
    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=sum(1 for s in file_stats if s.status == "success"),
        failed_files=sum(1 for s in file_stats if s.status != "success"),
        valid_rows=sum(s.valid_rows for s in file_stats),
        error_rows=sum(s.error_rows for s in file_stats),
        unmatched_rows=sum(s.unmatched_rows for s in file_stats),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
        error_log_path=str(log_path) if log_path else None,
    )
