from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.records import CellMatrix

"""Workbook reader: .xlsx -> cell matrix.

This is the thin codec adapter used by the CLI. The pipeline itself never sees
file bytes, only the matrix returned here:

- row 0 is the header row as typed in the sheet;
- NaN/NaT cells become None;
- datetime cells become ``YYYY-MM-DD`` text;
- numpy scalars become plain Python numbers;
- trailing all-empty columns are dropped by pandas.
"""

__all__ = [
    "WorkbookReadError",
    "read_cell_matrix",
    "frame_to_matrix",
]

logger = logging.getLogger(__name__)


class WorkbookReadError(Exception):
    """Raised when a workbook cannot be opened or the sheet is missing."""


def _normalize_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    return value


def frame_to_matrix(df: pd.DataFrame) -> CellMatrix:
    """Convert a header-less DataFrame into a list-of-lists cell matrix."""
    matrix: CellMatrix = []
    # astype(object) + tolist() で numpy 型を Python 型へ
    for raw in df.astype(object).itertuples(index=False, name=None):
        matrix.append([_normalize_cell(v) for v in raw])
    return matrix


def read_cell_matrix(path: Path, sheet: str | int = 0) -> tuple[str, CellMatrix]:
    """Read one sheet (first by default) without header inference.

    Returns:
        (sheet name, cell matrix)
    """
    try:
        with pd.ExcelFile(path) as xls:
            names = [str(n) for n in xls.sheet_names]
            if isinstance(sheet, int):
                if sheet >= len(names):
                    raise WorkbookReadError(f"workbook {path.name} has no sheet #{sheet}")
                name = names[sheet]
            else:
                if sheet not in names:
                    raise WorkbookReadError(f"workbook {path.name} has no sheet '{sheet}'")
                name = sheet
            # ヘッダなしで生読み (行0 = テンプレートのヘッダ)
            df = xls.parse(name, header=None, dtype=object)
    except WorkbookReadError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"cannot read workbook {path.name}: {e}") from e

    matrix = frame_to_matrix(df)
    logger.debug("read %s sheet=%s rows=%d", path.name, name, len(matrix))
    return name, matrix
