from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from ..models.enums import ImportType
from ..models.records import CellMatrix

"""Import templates.

The header row of each template is the column contract the row parsers rely
on (positions, not names, are used when parsing). Sample rows are valid
records so a freshly generated template parses with zero errors.
"""

__all__ = [
    "TEMPLATE_COLUMNS",
    "TEMPLATE_SAMPLES",
    "SHEET_NAMES",
    "INSTRUCTIONS",
    "build_template_matrix",
    "header_mismatches",
    "write_template",
]

TEMPLATE_COLUMNS: dict[ImportType, list[str]] = {
    ImportType.TRANSACTIONS: [
        "Date (YYYY-MM-DD)",
        "Description",
        "Category",
        "Type (revenue/expense)",
        "Amount",
        "Status (draft/posted)",
    ],
    ImportType.SUBSCRIPTIONS: [
        "Name",
        "Cost",
        "Billing Cycle (monthly/annual)",
        "Next Billing Date (YYYY-MM-DD)",
        "Category",
        "Status (active/cancelled/paused)",
    ],
    ImportType.PARTNERS: [
        "Name",
        "Email",
        "Share Percentage (0-100)",
        "Role",
        "Status (active/inactive)",
    ],
    ImportType.TIMESHEETS: [
        "Contractor Name",
        "Customer Name",
        "Month (YYYY-MM)",
        "Standard Days Worked",
        "Overtime Days",
        "Overtime Hours",
        "Status (draft/submitted/approved)",
    ],
}

TEMPLATE_SAMPLES: dict[ImportType, list[list[Any]]] = {
    ImportType.TRANSACTIONS: [
        ["2024-01-15", "Client Project Payment", "Income", "revenue", 5000, "posted"],
        ["2024-01-20", "Office Supplies", "Operations", "expense", 250, "posted"],
        ["2024-01-25", "Software License", "Technology", "expense", 99, "draft"],
    ],
    ImportType.SUBSCRIPTIONS: [
        ["Adobe Creative Cloud", 54.99, "monthly", "2024-02-01", "Software", "active"],
        ["AWS Hosting", 150, "monthly", "2024-02-05", "Infrastructure", "active"],
        ["Annual Insurance", 2400, "annual", "2024-12-01", "Insurance", "active"],
    ],
    ImportType.PARTNERS: [
        ["John Smith", "john@example.com", 40, "Partner", "active"],
        ["Jane Doe", "jane@example.com", 30, "Director", "active"],
        ["Bob Wilson", "bob@example.com", 30, "Partner", "inactive"],
    ],
    ImportType.TIMESHEETS: [
        ["Jane Doe", "Acme Corp", "2024-01", 20, 2, 4, "submitted"],
        ["Raj Patel", "Globex Ltd", "2024-01", 18, 0, 0, "draft"],
    ],
}

SHEET_NAMES: dict[ImportType, str] = {
    ImportType.TRANSACTIONS: "Transactions",
    ImportType.SUBSCRIPTIONS: "Subscriptions",
    ImportType.PARTNERS: "Partners",
    ImportType.TIMESHEETS: "Timesheets",
}

_COMMON_STEPS = [
    "1. Fill in your data starting from row 2",
    "2. Keep the header row (row 1) unchanged",
]

INSTRUCTIONS: dict[ImportType, list[str]] = {
    ImportType.TRANSACTIONS: _COMMON_STEPS + [
        "3. Date format: YYYY-MM-DD (e.g., 2024-01-15)",
        "4. Type must be: revenue or expense",
        "5. Status must be: draft or posted",
        "6. Amount should be a positive number",
        "7. Delete the sample data rows before uploading",
    ],
    ImportType.SUBSCRIPTIONS: _COMMON_STEPS + [
        "3. Cost should be a positive number",
        "4. Billing Cycle: monthly or annual",
        "5. Next Billing Date format: YYYY-MM-DD",
        "6. Status: active, cancelled, or paused",
        "7. Delete the sample data rows before uploading",
    ],
    ImportType.PARTNERS: _COMMON_STEPS + [
        "3. Share Percentage: greater than 0, at most 100",
        "4. Status: active or inactive",
        "5. Email must be a valid email address",
        "6. Delete the sample data rows before uploading",
    ],
    ImportType.TIMESHEETS: _COMMON_STEPS + [
        "3. Contractor and Customer names must match an existing assignment",
        "4. Month format: YYYY-MM (e.g., 2024-01)",
        "5. Standard Days Worked: 0-31; overtime values cannot be negative",
        "6. Overtime Hours are converted at 8 hours per day",
        "7. Status: draft, submitted, or approved",
        "8. Delete the sample data rows before uploading",
    ],
}


def build_template_matrix(import_type: ImportType | str, include_samples: bool = True) -> CellMatrix:
    kind = ImportType.parse(import_type)
    matrix: CellMatrix = [list(TEMPLATE_COLUMNS[kind])]
    if include_samples:
        matrix.extend(list(r) for r in TEMPLATE_SAMPLES[kind])
    return matrix


def header_mismatches(import_type: ImportType, header: list[Any]) -> list[str]:
    """Describe differences between ``header`` and the template header."""
    expected = TEMPLATE_COLUMNS[import_type]
    problems: list[str] = []
    for index, name in enumerate(expected):
        actual = str(header[index]).strip() if index < len(header) and header[index] is not None else ""
        if actual != name:
            problems.append(f"column {index + 1}: expected '{name}', found '{actual}'")
    return problems


def write_template(path: Path, import_type: ImportType | str, include_samples: bool = True) -> Path:
    """Write an .xlsx template with a data sheet and an Instructions sheet."""
    kind = ImportType.parse(import_type)
    matrix = build_template_matrix(kind, include_samples=include_samples)
    title = f"{SHEET_NAMES[kind]} Import Template"
    instructions = [[title], [""], ["Instructions:"]] + [[line] for line in INSTRUCTIONS[kind]]

    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(matrix).to_excel(writer, sheet_name=SHEET_NAMES[kind], header=False, index=False)
        pd.DataFrame(instructions).to_excel(writer, sheet_name="Instructions", header=False, index=False)
    return path
