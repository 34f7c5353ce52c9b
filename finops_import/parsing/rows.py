from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from ..errors import InvalidEnumValue
from ..models.enums import (
    BillingCycle,
    ImportType,
    PartnerStatus,
    SubscriptionStatus,
    TimesheetStatus,
    TransactionStatus,
    TransactionType,
)
from ..models.records import (
    CandidateRecord,
    CellMatrix,
    ImportResult,
    PartnerRecord,
    RowError,
    SubscriptionRecord,
    TimesheetRow,
    TransactionRecord,
)
from .cells import cell, cell_number, cell_text, is_blank_row, parse_date

"""Row parsers & validators, one per import type.

Contract shared by every parser:

- row 0 is the header and is never inspected;
- rows are processed top to bottom from index 1;
- a row whose cells are all empty is skipped (neither valid nor an error);
- every other row collects *all* of its violations, then yields exactly one
  candidate record or exactly one ``RowError`` (displayed row = index + 1).

Column positions follow the import templates (see ``excel.templates``).
"""

__all__ = [
    "DEFAULT_SUBSCRIPTION_CATEGORY",
    "EMAIL_RE",
    "MONTH_RE",
    "parse",
    "parse_transactions",
    "parse_subscriptions",
    "parse_partners",
    "parse_timesheets",
    "data_rows",
]

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIPTION_CATEGORY = "General"
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
MAX_DAYS_PER_MONTH = 31


def data_rows(matrix: CellMatrix) -> list[tuple[int, list[Any]]]:
    """(displayed row number, row) for every non-blank data row."""
    rows: list[tuple[int, list[Any]]] = []
    for index in range(1, len(matrix)):
        row = matrix[index]
        if is_blank_row(row):
            continue
        rows.append((index + 1, list(row)))
    return rows


def _enum_or_error(enum_cls: Any, text: str, default: Any, message: str, errors: list[str]) -> Any:
    if not text:
        return default
    try:
        return enum_cls.parse(text)
    except InvalidEnumValue:
        errors.append(message)
        return None


def _parse_rows(
    import_type: ImportType,
    matrix: CellMatrix,
    user_id: str,
    build: Callable[[int, list[Any], str, list[str]], CandidateRecord | None],
) -> ImportResult:
    result = ImportResult(import_type=import_type)
    for row_number, row in data_rows(matrix):
        violations: list[str] = []
        record = build(row_number, row, user_id, violations)
        if violations:
            result.errors.append(RowError(row_number, tuple(violations)))
        elif record is not None:
            result.valid.append(record)
    logger.debug(
        "parsed %s rows: valid=%d errors=%d",
        import_type.value,
        len(result.valid),
        len(result.errors),
    )
    return result


def _build_transaction(row_number: int, row: list[Any], user_id: str, errors: list[str]) -> TransactionRecord | None:
    date = parse_date(cell(row, 0))
    description = cell_text(cell(row, 1))
    category = cell_text(cell(row, 2))
    type_text = cell_text(cell(row, 3))
    amount = cell_number(cell(row, 4))
    status_text = cell_text(cell(row, 5))

    if date is None:
        errors.append("Invalid date format")
    if not description:
        errors.append("Description is required")
    if not category:
        errors.append("Category is required")
    try:
        tx_type = TransactionType.parse(type_text)
    except InvalidEnumValue:
        tx_type = None
        errors.append("Type must be revenue or expense")
    if amount is None or amount <= 0:
        errors.append("Amount must be a positive number")
    status = _enum_or_error(
        TransactionStatus, status_text, TransactionStatus.DRAFT, "Status must be draft or posted", errors
    )

    if errors:
        return None
    return TransactionRecord(
        user_id=user_id,
        row_number=row_number,
        date=date,
        description=description,
        category=category,
        type=tx_type,
        amount=amount,
        status=status,
    )


def _subscription_builder(default_category: str) -> Callable[[int, list[Any], str, list[str]], SubscriptionRecord | None]:
    def build(row_number: int, row: list[Any], user_id: str, errors: list[str]) -> SubscriptionRecord | None:
        name = cell_text(cell(row, 0))
        cost = cell_number(cell(row, 1))
        cycle_text = cell_text(cell(row, 2))
        next_billing = parse_date(cell(row, 3))
        category = cell_text(cell(row, 4))
        status_text = cell_text(cell(row, 5))

        if not name:
            errors.append("Name is required")
        if cost is None or cost <= 0:
            errors.append("Cost must be a positive number")
        try:
            cycle = BillingCycle.parse(cycle_text)
        except InvalidEnumValue:
            cycle = None
            errors.append("Billing cycle must be monthly or annual")
        if next_billing is None:
            errors.append("Invalid next billing date format")
        status = _enum_or_error(
            SubscriptionStatus,
            status_text,
            SubscriptionStatus.ACTIVE,
            "Status must be active, cancelled, or paused",
            errors,
        )

        if errors:
            return None
        return SubscriptionRecord(
            user_id=user_id,
            row_number=row_number,
            name=name,
            cost=cost,
            billing_cycle=cycle,
            next_billing_date=next_billing,
            category=category or default_category,
            status=status,
        )

    return build


def _build_partner(row_number: int, row: list[Any], user_id: str, errors: list[str]) -> PartnerRecord | None:
    name = cell_text(cell(row, 0))
    email = cell_text(cell(row, 1))
    share = cell_number(cell(row, 2))
    role = cell_text(cell(row, 3))
    status_text = cell_text(cell(row, 4))

    if not name:
        errors.append("Name is required")
    if not email or not EMAIL_RE.match(email):
        errors.append("Valid email is required")
    if share is None or share <= 0 or share > 100:
        errors.append("Share percentage must be between 1 and 100")
    if not role:
        errors.append("Role is required")
    status = _enum_or_error(
        PartnerStatus, status_text, PartnerStatus.ACTIVE, "Status must be active or inactive", errors
    )

    if errors:
        return None
    return PartnerRecord(
        user_id=user_id,
        row_number=row_number,
        name=name,
        email=email,
        share_percentage=share,
        role=role,
        status=status,
    )


def _build_timesheet(row_number: int, row: list[Any], user_id: str, errors: list[str]) -> TimesheetRow | None:
    contractor = cell_text(cell(row, 0))
    customer = cell_text(cell(row, 1))
    month = cell_text(cell(row, 2))
    # 数値列は欠落/解析不能なら 0 扱い (エラーにしない)
    standard_days = cell_number(cell(row, 3)) or 0.0
    overtime_days = cell_number(cell(row, 4)) or 0.0
    overtime_hours = cell_number(cell(row, 5)) or 0.0
    status_text = cell_text(cell(row, 6))

    if not contractor:
        errors.append("Contractor name is required")
    if not customer:
        errors.append("Customer name is required")
    if not MONTH_RE.match(month):
        errors.append("Month must be in YYYY-MM format")
    status = _enum_or_error(
        TimesheetStatus,
        status_text,
        TimesheetStatus.DRAFT,
        "Status must be draft, submitted, or approved",
        errors,
    )
    if standard_days < 0 or standard_days > MAX_DAYS_PER_MONTH:
        errors.append(f"Standard days worked must be between 0 and {MAX_DAYS_PER_MONTH}")
    if overtime_days < 0:
        errors.append("Overtime days cannot be negative")
    if overtime_hours < 0:
        errors.append("Overtime hours cannot be negative")

    if errors:
        return None
    return TimesheetRow(
        user_id=user_id,
        row_number=row_number,
        contractor_name=contractor,
        customer_name=customer,
        month=month,
        standard_days_worked=standard_days,
        overtime_days=overtime_days,
        overtime_hours=overtime_hours,
        status=status,
    )


def parse_transactions(matrix: CellMatrix, user_id: str) -> ImportResult:
    return _parse_rows(ImportType.TRANSACTIONS, matrix, user_id, _build_transaction)


def parse_subscriptions(
    matrix: CellMatrix, user_id: str, default_category: str = DEFAULT_SUBSCRIPTION_CATEGORY
) -> ImportResult:
    return _parse_rows(ImportType.SUBSCRIPTIONS, matrix, user_id, _subscription_builder(default_category))


def parse_partners(matrix: CellMatrix, user_id: str) -> ImportResult:
    return _parse_rows(ImportType.PARTNERS, matrix, user_id, _build_partner)


def parse_timesheets(matrix: CellMatrix, user_id: str) -> ImportResult:
    return _parse_rows(ImportType.TIMESHEETS, matrix, user_id, _build_timesheet)


def parse(
    import_type: ImportType | str,
    matrix: CellMatrix,
    user_id: str,
    *,
    default_subscription_category: str = DEFAULT_SUBSCRIPTION_CATEGORY,
) -> ImportResult:
    """Dispatch to the parser for ``import_type``."""
    kind = ImportType.parse(import_type)
    if kind is ImportType.TRANSACTIONS:
        return parse_transactions(matrix, user_id)
    if kind is ImportType.SUBSCRIPTIONS:
        return parse_subscriptions(matrix, user_id, default_subscription_category)
    if kind is ImportType.PARTNERS:
        return parse_partners(matrix, user_id)
    return parse_timesheets(matrix, user_id)
