from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Union

from .enums import (
    BillingCycle,
    ImportType,
    PartnerStatus,
    SubscriptionStatus,
    TimesheetStatus,
    TransactionStatus,
    TransactionType,
)

"""Candidate records and import results.

A candidate record is the validated, typed projection of one spreadsheet row
plus the owning user's id. Records are immutable and never partially valid:
a row either produces one record or one ``RowError``.

``row_number`` is the displayed spreadsheet row (matrix index + 1) and is kept
on every record so callers can point back at the source row.
"""

__all__ = [
    "CellMatrix",
    "TransactionRecord",
    "SubscriptionRecord",
    "PartnerRecord",
    "TimesheetRow",
    "CandidateRecord",
    "RowError",
    "ImportResult",
    "record_to_dict",
]

CellMatrix = list[list[Any]]


@dataclass(frozen=True)
class TransactionRecord:
    user_id: str
    row_number: int
    date: str  # YYYY-MM-DD
    description: str
    category: str
    type: TransactionType
    amount: float
    status: TransactionStatus = TransactionStatus.DRAFT


@dataclass(frozen=True)
class SubscriptionRecord:
    user_id: str
    row_number: int
    name: str
    cost: float
    billing_cycle: BillingCycle
    next_billing_date: str  # YYYY-MM-DD
    category: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE


@dataclass(frozen=True)
class PartnerRecord:
    user_id: str
    row_number: int
    name: str
    email: str
    share_percentage: float
    role: str
    status: PartnerStatus = PartnerStatus.ACTIVE


@dataclass(frozen=True)
class TimesheetRow:
    """Parsed timesheet row, not yet reconciled against an assignment."""
    user_id: str
    row_number: int
    contractor_name: str
    customer_name: str
    month: str  # YYYY-MM
    standard_days_worked: float = 0.0
    overtime_days: float = 0.0
    overtime_hours: float = 0.0
    status: TimesheetStatus = TimesheetStatus.DRAFT


CandidateRecord = Union[TransactionRecord, SubscriptionRecord, PartnerRecord, TimesheetRow]


@dataclass(frozen=True)
class RowError:
    """All violations found on one row, reported as a single entry."""
    row_number: int
    messages: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Row {self.row_number}: {', '.join(self.messages)}"


@dataclass(frozen=True)
class ImportResult:
    """Partition of the non-blank data rows into records and errors."""
    import_type: ImportType
    valid: list[CandidateRecord] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.valid) + len(self.errors)

    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors]


def record_to_dict(record: Any) -> dict[str, Any]:
    """Serialize a frozen record to a plain dict (enum members -> values)."""
    data = asdict(record)
    for key, value in data.items():
        if isinstance(value, Enum):
            data[key] = value.value
    return data
