from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from finops_import.config.loader import ConfigError, load_assignments, load_config
from finops_import.excel.reader import WorkbookReadError, read_cell_matrix
from finops_import.excel.templates import write_template
from finops_import.logging.init import log_summary, set_debug, setup_logging
from finops_import.models.enums import ImportType
from finops_import.services.currency import build_rate_cache
from finops_import.services.orchestrator import ProcessingError, process_directory, scan_excel_files
from finops_import.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- load .env (python-dotenv), then config/import.yml (or --config)
- load assignments, build the exchange rate cache
- import every workbook of the source directory
- print the SUMMARY line and exit with 0 (clean), 2 (failed files, row errors
  or unmatched timesheets) or 1 (fatal)

``--write-template TYPE --output PATH`` writes a blank import template and
exits without reading any config.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so FINOPS_* overrides win over the shell environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="finops-import", description="Excel -> finance records importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to the YAML config")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print header & first rows of each workbook then exit")
    p.add_argument(
        "--write-template",
        metavar="TYPE",
        choices=ImportType.allowed(),
        help="Write an import template (%(choices)s) and exit",
    )
    p.add_argument("--output", type=Path, help="Destination .xlsx for --write-template")
    return p.parse_args(argv)


def _inspect_data(directory: Path) -> int:
    try:
        files = scan_excel_files(directory)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            sheet, matrix = read_cell_matrix(f)
        except WorkbookReadError as e:
            print(f"  read_error: {e}")
            continue
        header = matrix[0] if matrix else []
        print(f"  SHEET: {sheet} cols={header}")
        print("    sample_rows=", matrix[1:4])
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] を渡された場合に sys.argv を読まないよう None のときのみ
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug()
        logger.debug("debug mode enabled")

    if args.write_template:
        if args.output is None:
            logger.error("--write-template requires --output")
            return EXIT_FATAL
        path = write_template(args.output, args.write_template)
        logger.info(f"template written: {path}")
        return EXIT_SUCCESS_ALL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        return _inspect_data(directory)

    assignments = []
    if cfg.assignments_file:
        try:
            assignments = load_assignments(Path(cfg.assignments_file))
        except ConfigError as e:
            logger.error(f"assignments: {e}")
            return EXIT_FATAL
        logger.info(f"loaded {len(assignments)} assignments")

    rates = build_rate_cache(cfg.currency)
    try:
        result = process_directory(cfg, rates, assignments)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    if result.error_log_path:
        logger.info(f"error log: {result.error_log_path}")

    # log_summary が "SUMMARY " を付けるので先頭を除去
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.has_problems:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
