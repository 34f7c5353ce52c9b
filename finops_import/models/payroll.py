from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .enums import Currency, PaymentStatus, PayrollStatus, TeamMemberStatus

"""Team, payroll and payment models.

Payroll records and payments are persisted by the caller; this package only
computes them and checks the month-level idempotency guard before handoff.
"""

__all__ = [
    "TeamMember",
    "PayrollRecord",
    "Payment",
    "PaymentSummary",
]


@dataclass(frozen=True)
class TeamMember:
    id: str
    name: str
    monthly_salary: float
    currency: Currency = Currency.USD
    status: TeamMemberStatus = TeamMemberStatus.ACTIVE
    email: str | None = None
    role: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is TeamMemberStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TeamMember:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            monthly_salary=float(data["monthly_salary"]),
            currency=Currency.parse(data.get("currency", "USD")),
            status=TeamMemberStatus.parse(data.get("status", "active")),
            email=data.get("email"),
            role=data.get("role"),
        )


@dataclass(frozen=True)
class PayrollRecord:
    user_id: str
    team_member_id: str
    team_member_name: str
    month: str  # YYYY-MM
    base_salary: float
    net_amount: float
    currency: Currency
    bonus: float = 0.0
    deductions: float = 0.0
    status: PayrollStatus = PayrollStatus.PENDING
    paid_date: str | None = None
    id: str | None = None  # assigned by the store


@dataclass(frozen=True)
class Payment:
    """Amount paid against a transaction or a timesheet."""
    amount: float
    payment_date: str  # YYYY-MM-DD
    transaction_id: str | None = None
    timesheet_id: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class PaymentSummary:
    """Derived, non-persisted view over a list of payments."""
    total_paid: float
    remaining_balance: float
    status: PaymentStatus
    payment_count: int
    last_payment_date: str | None = None
