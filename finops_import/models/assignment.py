from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .enums import AssignmentStatus, Currency, TimesheetStatus
from .records import TimesheetRow

"""Contractor assignment and timesheet reconciliation models.

``Assignment`` is owned by an external store and is read-only here. The
matcher pairs ``TimesheetRow`` candidates with assignments, and the
financial engine turns each pair into a ``TimesheetFinancials`` record that
holds every field needed to persist it.
"""

__all__ = [
    "Assignment",
    "MatchedTimesheet",
    "UnmatchedTimesheet",
    "MatchResult",
    "TimesheetFinancials",
]


def _iso_or_none(value: Any) -> str | None:
    # YAML は日付を date 型で返す
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class Assignment:
    """Contractor <-> customer pairing with its day rates."""
    id: str
    contractor_id: str
    contractor_name: str
    customer_id: str
    customer_name: str
    internal_day_rate: float
    internal_currency: Currency
    external_day_rate: float
    external_currency: Currency = Currency.USD
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    start_date: str | None = None  # YYYY-MM-DD
    end_date: str | None = None
    standard_days_per_month: float = 20.0

    @property
    def is_active(self) -> bool:
        return self.status is AssignmentStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Assignment:
        """Build from a plain mapping (YAML / document store payload)."""
        return cls(
            id=str(data["id"]),
            contractor_id=str(data.get("contractor_id", "")),
            contractor_name=str(data["contractor_name"]),
            customer_id=str(data.get("customer_id", "")),
            customer_name=str(data["customer_name"]),
            internal_day_rate=float(data["internal_day_rate"]),
            internal_currency=Currency.parse(data.get("internal_currency", "USD")),
            external_day_rate=float(data["external_day_rate"]),
            external_currency=Currency.parse(data.get("external_currency", "USD")),
            status=AssignmentStatus.parse(data.get("status", "active")),
            start_date=_iso_or_none(data.get("start_date")),
            end_date=_iso_or_none(data.get("end_date")),
            standard_days_per_month=float(data.get("standard_days_per_month") or 20),
        )


@dataclass(frozen=True)
class MatchedTimesheet:
    row: TimesheetRow
    assignment: Assignment


@dataclass(frozen=True)
class UnmatchedTimesheet:
    row: TimesheetRow
    reason: str


@dataclass(frozen=True)
class MatchResult:
    matched: list[MatchedTimesheet] = field(default_factory=list)
    unmatched: list[UnmatchedTimesheet] = field(default_factory=list)


@dataclass(frozen=True)
class TimesheetFinancials:
    """Persistence-ready timesheet with derived figures.

    Monetary fields suffixed ``_base`` are in the base currency.
    ``external_revenue`` is in ``external_currency`` and is compared with base
    amounts without conversion.
    """
    user_id: str
    row_number: int
    assignment_id: str
    contractor_id: str
    contractor_name: str
    customer_id: str
    customer_name: str
    month: str
    standard_days_worked: float
    overtime_days: float
    overtime_hours: float
    internal_day_rate: float
    internal_currency: Currency
    internal_day_rate_base: float
    external_day_rate: float
    external_currency: Currency
    exchange_rate: float
    total_days_worked: float
    internal_cost: float
    internal_cost_base: float
    external_revenue: float
    profit: float
    status: TimesheetStatus
