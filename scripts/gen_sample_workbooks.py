#!/usr/bin/env python3
"""Generate synthetic import workbooks for manual and volume testing.

One .xlsx per import type, laid out exactly like the import templates:
- Row 1: template header row
- Row 2+: data rows, a configurable share of them deliberately invalid

Timesheet rows use the contractor/customer pairs of config/assignments.yml so
most of them match; ``--unmatched-ratio`` adds pairs with no assignment.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from finops_import.excel.templates import SHEET_NAMES, TEMPLATE_COLUMNS
from finops_import.models.enums import ImportType

PAIRS = [("Jane Doe", "Acme Corp"), ("Raj Patel", "Globex Ltd")]
CATEGORIES = ["Income", "Operations", "Technology", "Travel", "Marketing"]


def _dates(rng: np.random.Generator, rows: int) -> list[str]:
    days = pd.date_range("2024-01-01", "2024-12-31", freq="D")
    return pd.DatetimeIndex(rng.choice(days, rows)).strftime("%Y-%m-%d").tolist()


def generate_rows(import_type: ImportType, rows: int, rng: np.random.Generator) -> list[list[Any]]:
    """Valid rows for ``import_type``."""
    if import_type is ImportType.TRANSACTIONS:
        amounts = np.round(rng.uniform(10, 10_000, rows), 2)
        return [
            [d, f"Entry {i + 1}", rng.choice(CATEGORIES), rng.choice(["revenue", "expense"]),
             float(a), rng.choice(["draft", "posted"])]
            for i, (d, a) in enumerate(zip(_dates(rng, rows), amounts))
        ]
    if import_type is ImportType.SUBSCRIPTIONS:
        costs = np.round(rng.uniform(5, 3_000, rows), 2)
        return [
            [f"Service {i + 1}", float(c), rng.choice(["monthly", "annual"]), d,
             rng.choice(CATEGORIES), rng.choice(["active", "paused", "cancelled"])]
            for i, (c, d) in enumerate(zip(costs, _dates(rng, rows)))
        ]
    if import_type is ImportType.PARTNERS:
        shares = rng.integers(1, 101, rows)
        return [
            [f"Partner {i + 1}", f"partner{i + 1}@example.com", int(s), "Partner", rng.choice(["active", "inactive"])]
            for i, s in enumerate(shares)
        ]
    days = rng.integers(0, 23, rows)
    ot_hours = rng.integers(0, 17, rows)
    out = []
    for i in range(rows):
        contractor, customer = PAIRS[i % len(PAIRS)]
        out.append([contractor, customer, f"2024-{(i % 12) + 1:02d}", int(days[i]), 0, int(ot_hours[i]), "submitted"])
    return out


def corrupt(import_type: ImportType, row: list[Any]) -> list[Any]:
    """Break one required field so the row fails validation."""
    bad = list(row)
    if import_type is ImportType.TRANSACTIONS:
        bad[4] = -1
    elif import_type is ImportType.SUBSCRIPTIONS:
        bad[2] = "weekly"
    elif import_type is ImportType.PARTNERS:
        bad[1] = "not-an-email"
    else:
        bad[2] = "2024/01"
    return bad


def create_workbook(
    output_dir: Path,
    import_type: ImportType,
    rows: int,
    error_ratio: float,
    unmatched_ratio: float,
    rng: np.random.Generator,
) -> Path:
    data = generate_rows(import_type, rows, rng)
    for i in np.flatnonzero(rng.random(rows) < error_ratio):
        data[i] = corrupt(import_type, data[i])
    if import_type is ImportType.TIMESHEETS:
        for i in np.flatnonzero(rng.random(rows) < unmatched_ratio):
            data[i][1] = "Unknown Customer"

    path = output_dir / f"{import_type.value}-sample.xlsx"
    output_dir.mkdir(parents=True, exist_ok=True)
    sheet = pd.DataFrame([TEMPLATE_COLUMNS[import_type]] + data)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        sheet.to_excel(writer, sheet_name=SHEET_NAMES[import_type], header=False, index=False)
    print(f"Created {path} ({rows} rows)")
    return path


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate synthetic import workbooks")
    parser.add_argument("output_dir", type=Path, help="Directory for the generated .xlsx files")
    parser.add_argument("--rows", type=int, default=1_000, help="Data rows per workbook (default: 1,000)")
    parser.add_argument(
        "--types", nargs="+", default=ImportType.allowed(), choices=ImportType.allowed(), help="Import types to generate"
    )
    parser.add_argument("--error-ratio", type=float, default=0.05, help="Share of invalid rows (default: 0.05)")
    parser.add_argument("--unmatched-ratio", type=float, default=0.02, help="Share of unmatched timesheets")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.error_ratio <= 1 or not 0 <= args.unmatched_ratio <= 1:
        print("Error: ratios must be between 0 and 1", file=sys.stderr)
        return 1

    rng = np.random.default_rng(args.seed)
    for name in args.types:
        create_workbook(args.output_dir, ImportType.parse(name), args.rows, args.error_ratio, args.unmatched_ratio, rng)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
