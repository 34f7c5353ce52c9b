from __future__ import annotations

from enum import Enum
from typing import Any

from ..errors import InvalidEnumValue

"""Closed enumerations for every string-keyed variant field.

Each enum exposes ``parse(value)`` which trims the incoming cell text, folds it
to the enum's canonical case and returns the member, or raises
``InvalidEnumValue`` naming the enum and the rejected value.
"""

__all__ = [
    "ParsableEnum",
    "ImportType",
    "TransactionType",
    "TransactionStatus",
    "BillingCycle",
    "SubscriptionStatus",
    "PartnerStatus",
    "TimesheetStatus",
    "AssignmentStatus",
    "TeamMemberStatus",
    "PayrollStatus",
    "PaymentStatus",
    "Currency",
]


class ParsableEnum(Enum):
    """String enum with a strict ``parse`` constructor."""

    @classmethod
    def _fold(cls, text: str) -> str:
        return text.lower()

    @classmethod
    def allowed(cls) -> list[str]:
        return [m.value for m in cls]

    @classmethod
    def parse(cls, value: Any) -> ParsableEnum:
        if isinstance(value, cls):
            return value
        text = cls._fold(str(value if value is not None else "").strip())
        for member in cls:
            if member.value == text:
                return member
        raise InvalidEnumValue(cls.__name__, value, cls.allowed())


class ImportType(ParsableEnum):
    TRANSACTIONS = "transactions"
    SUBSCRIPTIONS = "subscriptions"
    PARTNERS = "partners"
    TIMESHEETS = "timesheets"


class TransactionType(ParsableEnum):
    REVENUE = "revenue"
    EXPENSE = "expense"


class TransactionStatus(ParsableEnum):
    DRAFT = "draft"
    POSTED = "posted"


class BillingCycle(ParsableEnum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionStatus(ParsableEnum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAUSED = "paused"


class PartnerStatus(ParsableEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TimesheetStatus(ParsableEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class AssignmentStatus(ParsableEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TeamMemberStatus(ParsableEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PayrollStatus(ParsableEnum):
    PENDING = "pending"
    PAID = "paid"


class PaymentStatus(ParsableEnum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Currency(ParsableEnum):
    """Supported currencies. USD is the base currency."""
    USD = "USD"
    INR = "INR"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    SGD = "SGD"

    @classmethod
    def _fold(cls, text: str) -> str:
        return text.upper()
