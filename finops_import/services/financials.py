from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import replace

from ..errors import PayrollGenerationError
from ..models.assignment import Assignment, MatchedTimesheet, TimesheetFinancials
from ..models.enums import PaymentStatus, PayrollStatus, TimesheetStatus
from ..models.payroll import Payment, PaymentSummary, PayrollRecord, TeamMember
from ..models.records import TimesheetRow
from .currency import ExchangeRateCache

"""Financial computation engine.

Timesheet figures (per matched row)::

    total_days_worked  = standard_days + overtime_days + overtime_hours / 8
    internal_cost      = total_days_worked * internal_day_rate      (internal currency)
    internal_cost_base = total_days_worked * to_base(internal_day_rate)
    external_revenue   = total_days_worked * external_day_rate      (external currency)
    profit             = external_revenue - internal_cost_base

``external_revenue`` is not converted: the billing currency is treated as
comparable to the base currency. A warning is logged for every record where
that is not literally true.

Payroll generation is guarded per month: if any record already exists for
the target month, nothing is generated.
"""

__all__ = [
    "HOURS_PER_DAY",
    "total_days_worked",
    "compute_timesheet_financials",
    "generate_payroll",
    "mark_payroll_paid",
    "calculate_payment_summary",
    "generate_timesheets_for_month",
]

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 8
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def total_days_worked(standard_days: float, overtime_days: float, overtime_hours: float) -> float:
    return standard_days + overtime_days + overtime_hours / HOURS_PER_DAY


def compute_timesheet_financials(
    matched: Iterable[MatchedTimesheet], rates: ExchangeRateCache
) -> list[TimesheetFinancials]:
    """Derive cost, revenue and profit for every matched timesheet."""
    records: list[TimesheetFinancials] = []
    for item in matched:
        row, assignment = item.row, item.assignment
        days = total_days_worked(row.standard_days_worked, row.overtime_days, row.overtime_hours)

        exchange_rate = rates.rate(assignment.internal_currency)
        internal_day_rate_base = assignment.internal_day_rate * exchange_rate
        internal_cost = days * assignment.internal_day_rate
        internal_cost_base = days * internal_day_rate_base
        external_revenue = days * assignment.external_day_rate

        if assignment.external_currency is not rates.base:
            logger.warning(
                "row %d: revenue in %s compared to cost in %s without conversion (assignment %s)",
                row.row_number,
                assignment.external_currency.value,
                rates.base.value,
                assignment.id,
            )

        records.append(
            TimesheetFinancials(
                user_id=row.user_id,
                row_number=row.row_number,
                assignment_id=assignment.id,
                contractor_id=assignment.contractor_id,
                contractor_name=assignment.contractor_name,
                customer_id=assignment.customer_id,
                customer_name=assignment.customer_name,
                month=row.month,
                standard_days_worked=row.standard_days_worked,
                overtime_days=row.overtime_days,
                overtime_hours=row.overtime_hours,
                internal_day_rate=assignment.internal_day_rate,
                internal_currency=assignment.internal_currency,
                internal_day_rate_base=internal_day_rate_base,
                external_day_rate=assignment.external_day_rate,
                external_currency=assignment.external_currency,
                exchange_rate=exchange_rate,
                total_days_worked=days,
                internal_cost=internal_cost,
                internal_cost_base=internal_cost_base,
                external_revenue=external_revenue,
                profit=external_revenue - internal_cost_base,
                status=row.status,
            )
        )
    return records


def _check_month(month: str) -> None:
    if not _MONTH_RE.match(month or ""):
        raise PayrollGenerationError(f"Invalid payroll month {month!r}, expected YYYY-MM")


def generate_payroll(
    month: str,
    team_members: Sequence[TeamMember],
    existing_records: Iterable[PayrollRecord],
    user_id: str,
) -> list[PayrollRecord]:
    """Create one pending payroll record per active team member.

    Raises:
        PayrollGenerationError: month malformed, no active members, or any
            record already exists for ``month``. Nothing is created then.
    """
    _check_month(month)
    active = [m for m in team_members if m.is_active]
    if not active:
        raise PayrollGenerationError("No active team members")
    if any(r.month == month for r in existing_records):
        raise PayrollGenerationError(f"Payroll already exists for {month}")

    records = [
        PayrollRecord(
            user_id=user_id,
            team_member_id=member.id,
            team_member_name=member.name,
            month=month,
            base_salary=member.monthly_salary,
            net_amount=member.monthly_salary,
            currency=member.currency,
            status=PayrollStatus.PENDING,
        )
        for member in active
    ]
    logger.info("generated payroll for %d team members (%s)", len(records), month)
    return records


def mark_payroll_paid(
    records: Iterable[PayrollRecord], record_ids: Iterable[str], paid_date: str
) -> list[PayrollRecord]:
    """Return copies of the selected records with status ``paid``."""
    wanted = set(record_ids)
    return [
        replace(r, status=PayrollStatus.PAID, paid_date=paid_date)
        for r in records
        if r.id is not None and r.id in wanted
    ]


def calculate_payment_summary(target: float, payments: Sequence[Payment]) -> PaymentSummary:
    total_paid = sum(p.amount for p in payments)
    remaining = max(0.0, target - total_paid)

    if total_paid >= target:
        status = PaymentStatus.PAID
    elif total_paid > 0:
        status = PaymentStatus.PARTIAL
    else:
        status = PaymentStatus.UNPAID

    # 同日付は入力順で先勝ち (日付は YYYY-MM-DD の文字列比較)
    last_date: str | None = None
    for p in payments:
        if last_date is None or p.payment_date > last_date:
            last_date = p.payment_date

    return PaymentSummary(
        total_paid=total_paid,
        remaining_balance=remaining,
        status=status,
        payment_count=len(payments),
        last_payment_date=last_date,
    )


def _month_bounds(month: str) -> tuple[str, str]:
    year, mon = (int(part) for part in month.split("-"))
    last_day = calendar.monthrange(year, mon)[1]
    return f"{month}-01", f"{month}-{last_day:02d}"


def generate_timesheets_for_month(
    month: str,
    assignments: Sequence[Assignment],
    existing_timesheets: Iterable[TimesheetFinancials],
    user_id: str,
) -> list[MatchedTimesheet]:
    """Draft timesheet rows for active assignments that have none for ``month``.

    An assignment qualifies when its start date is not after the month and its
    end date (if any) is not before it. Each draft uses the assignment's
    standard days per month and no overtime; the result can be passed
    straight to ``compute_timesheet_financials``.
    """
    if not _MONTH_RE.match(month or ""):
        raise ValueError(f"invalid month {month!r}, expected YYYY-MM")
    month_start, month_end = _month_bounds(month)
    already = {t.assignment_id for t in existing_timesheets if t.month == month}

    drafts: list[MatchedTimesheet] = []
    for assignment in assignments:
        if not assignment.is_active or assignment.id in already:
            continue
        if assignment.start_date and assignment.start_date > month_end:
            continue
        if assignment.end_date and assignment.end_date < month_start:
            continue
        row = TimesheetRow(
            user_id=user_id,
            row_number=0,
            contractor_name=assignment.contractor_name,
            customer_name=assignment.customer_name,
            month=month,
            standard_days_worked=assignment.standard_days_per_month,
            status=TimesheetStatus.DRAFT,
        )
        drafts.append(MatchedTimesheet(row, assignment))
    logger.debug("draft timesheets for %s: %d", month, len(drafts))
    return drafts
