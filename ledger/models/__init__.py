"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the system must conform to these schemas.
"""

from ledger.models.transaction import (
    AMOUNT_STEP,
    DEFAULT_CATEGORIES,
    DESCRIPTION_PLACEHOLDER,
    CategoryManagerView,
    CategoryTotal,
    Currency,
    DayCounts,
    DaySummary,
    ExchangeRate,
    LedgerSummary,
    MonthOverMonthDelta,
    Preferences,
    SpendingSummary,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AMOUNT_STEP",
    "DEFAULT_CATEGORIES",
    "DESCRIPTION_PLACEHOLDER",
    "CategoryManagerView",
    "CategoryTotal",
    "Currency",
    "DayCounts",
    "DaySummary",
    "ExchangeRate",
    "LedgerSummary",
    "MonthOverMonthDelta",
    "Preferences",
    "SpendingSummary",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
