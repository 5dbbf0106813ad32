"""
Data Models Package

This package contains all Pydantic models used by the Split Ledger engine.
All data flowing through the engine must conform to these schemas.
"""

from splitledger.models.money import Money
from splitledger.models.ledger import (
    AdjustmentInput,
    ExactInput,
    Expense,
    ExpenseDeletion,
    ExpenseDraft,
    ItemizedInput,
    LedgerEvent,
    LineItem,
    Participant,
    Payment,
    PaymentDeletion,
    PaymentMethod,
    PercentageInput,
    ReimbursementInput,
    SharesInput,
    Split,
    SplitInput,
    SplitType,
)
from splitledger.models.balance import (
    Balance,
    CategorySpending,
    DashboardSummary,
    FriendBalance,
    GroupBalance,
    HighestOwed,
    MonthlySpending,
    SpendingSummary,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    "Money",
    # Ledger models
    "AdjustmentInput",
    "ExactInput",
    "Expense",
    "ExpenseDeletion",
    "ExpenseDraft",
    "ItemizedInput",
    "LedgerEvent",
    "LineItem",
    "Participant",
    "Payment",
    "PaymentDeletion",
    "PaymentMethod",
    "PercentageInput",
    "ReimbursementInput",
    "SharesInput",
    "Split",
    "SplitInput",
    "SplitType",
    # Balance views
    "Balance",
    "CategorySpending",
    "DashboardSummary",
    "FriendBalance",
    "GroupBalance",
    "HighestOwed",
    "MonthlySpending",
    "SpendingSummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
