"""Domain models for the bulk import & reconciliation pipeline.

This package contains the closed enumerations, candidate records, reconciliation
and payroll models, and the run-level result/config types.
"""

from .assignment import Assignment, MatchedTimesheet, MatchResult, TimesheetFinancials, UnmatchedTimesheet
from .config_models import CurrencyConfig, ImportConfig
from .enums import (
    AssignmentStatus,
    BillingCycle,
    Currency,
    ImportType,
    PartnerStatus,
    PaymentStatus,
    PayrollStatus,
    SubscriptionStatus,
    TeamMemberStatus,
    TimesheetStatus,
    TransactionStatus,
    TransactionType,
)
from .payroll import Payment, PaymentSummary, PayrollRecord, TeamMember
from .records import (
    CandidateRecord,
    CellMatrix,
    ImportResult,
    PartnerRecord,
    RowError,
    SubscriptionRecord,
    TimesheetRow,
    TransactionRecord,
)

__all__ = [
    # Enumerations
    "AssignmentStatus",
    "BillingCycle",
    "Currency",
    "ImportType",
    "PartnerStatus",
    "PaymentStatus",
    "PayrollStatus",
    "SubscriptionStatus",
    "TeamMemberStatus",
    "TimesheetStatus",
    "TransactionStatus",
    "TransactionType",
    # Candidate records
    "CandidateRecord",
    "CellMatrix",
    "ImportResult",
    "PartnerRecord",
    "RowError",
    "SubscriptionRecord",
    "TimesheetRow",
    "TransactionRecord",
    # Reconciliation
    "Assignment",
    "MatchedTimesheet",
    "MatchResult",
    "TimesheetFinancials",
    "UnmatchedTimesheet",
    # Payroll / payments
    "Payment",
    "PaymentSummary",
    "PayrollRecord",
    "TeamMember",
    # Configuration
    "CurrencyConfig",
    "ImportConfig",
]
