from __future__ import annotations

import calendar
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from ..models.assignment import Assignment, TimesheetFinancials
from .currency import ExchangeRateCache

"""Contractor profitability metrics over computed timesheets.

All figures are in the base currency: cost uses ``internal_cost_base`` and
revenue is taken as recorded. Margin is profit / revenue in percent (0 when
there is no revenue).

The projection and expiry views at the bottom work from assignments
instead of recorded timesheets.
"""

__all__ = [
    "ContractorMetrics",
    "BreakdownMetrics",
    "filter_timesheets",
    "summarize_timesheets",
    "metrics_by_contractor",
    "metrics_by_customer",
    "RevenueProjection",
    "ExpiringContract",
    "project_future_revenue",
    "expiring_contracts",
]

_QUARTER_MONTHS = {
    "Q1": ("01", "03"),
    "Q2": ("04", "06"),
    "Q3": ("07", "09"),
    "Q4": ("10", "12"),
}

_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

# 稼働日数未設定の契約に使う既定値
DEFAULT_DAYS_PER_MONTH = 20.0


@dataclass(frozen=True)
class ContractorMetrics:
    total_revenue: float
    total_cost: float
    total_profit: float
    profit_margin: float
    timesheet_count: int


@dataclass(frozen=True)
class BreakdownMetrics:
    key: str  # contractor_id / customer_id
    name: str
    revenue: float
    cost: float
    profit: float
    margin: float
    days_worked: float
    contractor_count: int = 0


def _margin(profit: float, revenue: float) -> float:
    return (profit / revenue) * 100 if revenue > 0 else 0.0


def filter_timesheets(
    timesheets: Iterable[TimesheetFinancials],
    *,
    month: str | None = None,
    quarter: str | None = None,
    year: str | None = None,
) -> list[TimesheetFinancials]:
    """Month filter wins over quarter+year, which wins over year alone."""
    items = list(timesheets)
    if month:
        return [t for t in items if t.month == month]
    if quarter and year:
        bounds = _QUARTER_MONTHS.get(quarter.strip().upper())
        if bounds is None:
            raise ValueError(f"invalid quarter {quarter!r}, expected one of {', '.join(_QUARTER_MONTHS)}")
        start, end = bounds
        return [
            t for t in items
            if t.month.split("-")[0] == year and start <= t.month.split("-")[1] <= end
        ]
    if year:
        return [t for t in items if t.month.startswith(year)]
    return items


def summarize_timesheets(
    timesheets: Iterable[TimesheetFinancials],
    *,
    month: str | None = None,
    quarter: str | None = None,
    year: str | None = None,
) -> ContractorMetrics:
    items = filter_timesheets(timesheets, month=month, quarter=quarter, year=year)
    revenue = sum(t.external_revenue for t in items)
    cost = sum(t.internal_cost_base for t in items)
    profit = revenue - cost
    return ContractorMetrics(
        total_revenue=revenue,
        total_cost=cost,
        total_profit=profit,
        profit_margin=_margin(profit, revenue),
        timesheet_count=len(items),
    )


def _breakdown(items: list[TimesheetFinancials], by_customer: bool) -> list[BreakdownMetrics]:
    totals: dict[str, dict[str, object]] = {}
    for t in items:
        key = t.customer_id if by_customer else t.contractor_id
        name = t.customer_name if by_customer else t.contractor_name
        entry = totals.setdefault(
            key,
            {"name": name, "revenue": 0.0, "cost": 0.0, "profit": 0.0, "days": 0.0, "contractors": set()},
        )
        entry["revenue"] += t.external_revenue
        entry["cost"] += t.internal_cost_base
        entry["profit"] += t.profit
        entry["days"] += t.total_days_worked
        entry["contractors"].add(t.contractor_id)

    return [
        BreakdownMetrics(
            key=key,
            name=entry["name"],
            revenue=entry["revenue"],
            cost=entry["cost"],
            profit=entry["profit"],
            margin=_margin(entry["profit"], entry["revenue"]),
            days_worked=entry["days"],
            contractor_count=len(entry["contractors"]) if by_customer else 0,
        )
        for key, entry in totals.items()
    ]


def metrics_by_contractor(
    timesheets: Iterable[TimesheetFinancials], *, month: str | None = None
) -> list[BreakdownMetrics]:
    return _breakdown(filter_timesheets(timesheets, month=month), by_customer=False)


def metrics_by_customer(
    timesheets: Iterable[TimesheetFinancials], *, month: str | None = None
) -> list[BreakdownMetrics]:
    return _breakdown(filter_timesheets(timesheets, month=month), by_customer=True)


# --- forward-looking views over assignments ---------------------------------

@dataclass(frozen=True)
class RevenueProjection:
    month: str  # YYYY-MM
    projected_revenue: float
    projected_cost: float
    projected_profit: float


@dataclass(frozen=True)
class ExpiringContract:
    assignment: Assignment
    days_left: int


def _next_months(start_month: str, count: int) -> list[str]:
    m = _MONTH_RE.match(start_month or "")
    if not m:
        raise ValueError(f"invalid month {start_month!r}, expected YYYY-MM")
    year, month = int(m.group(1)), int(m.group(2))
    months = []
    for _ in range(count):
        months.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def _covers_month(assignment: Assignment, month: str) -> bool:
    year, mon = (int(p) for p in month.split("-"))
    first = f"{month}-01"
    last = f"{month}-{calendar.monthrange(year, mon)[1]:02d}"
    if assignment.end_date and assignment.end_date < first:
        return False
    if assignment.start_date and assignment.start_date > last:
        return False
    return True


def project_future_revenue(
    assignments: Sequence[Assignment],
    rates: ExchangeRateCache,
    months: int = 6,
    start_month: str | None = None,
) -> list[RevenueProjection]:
    """Project revenue, cost and profit for upcoming months.

    Every active assignment whose date range overlaps a month contributes its
    standard days per month (20 when unset) at its day rates. Cost is in the
    base currency; revenue is taken at the external rate as recorded, the
    same way ``summarize_timesheets`` treats it.

    Args:
        start_month: first projected month (YYYY-MM); defaults to the month
            after today.
    """
    if start_month is None:
        today = date.today()
        start_month = f"{today.year + 1}-01" if today.month == 12 else f"{today.year}-{today.month + 1:02d}"
    active = [a for a in assignments if a.is_active]

    projections: list[RevenueProjection] = []
    for month in _next_months(start_month, months):
        revenue = 0.0
        cost = 0.0
        for a in active:
            if not _covers_month(a, month):
                continue
            days = a.standard_days_per_month or DEFAULT_DAYS_PER_MONTH
            revenue += days * a.external_day_rate
            cost += days * rates.to_base(a.internal_day_rate, a.internal_currency)
        projections.append(RevenueProjection(month, revenue, cost, revenue - cost))
    return projections


def expiring_contracts(
    assignments: Iterable[Assignment],
    days_threshold: int = 30,
    today: date | None = None,
) -> list[ExpiringContract]:
    """Active assignments ending within ``days_threshold`` days, soonest first."""
    today = today or date.today()
    horizon = today + timedelta(days=days_threshold)
    expiring = []
    for a in assignments:
        if not a.is_active or not a.end_date:
            continue
        end = date.fromisoformat(a.end_date)
        if today <= end <= horizon:
            expiring.append(ExpiringContract(a, (end - today).days))
    expiring.sort(key=lambda e: e.days_left)
    return expiring
