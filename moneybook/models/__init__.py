"""
Data Models Package

This package contains all Pydantic models used in moneybook.
All data flowing through the data-sync layer must conform to these schemas.
"""

from moneybook.models.records import (
    MODEL_BY_KIND,
    SORT_ORDER_BY_KIND,
    Account,
    AccountInput,
    Category,
    CategoryInput,
    RecordKind,
    StoredRecord,
    Transaction,
    TransactionInput,
    TransactionKind,
    sort_records,
)
from moneybook.models.summary import (
    AccountShare,
    CategoryBreakdown,
    CategoryShare,
    CategoryTotals,
    MonthlyTotals,
    PeriodSummary,
    YearlyReport,
)
from moneybook.models.validation import ValidationIssue, ValidationResult
from moneybook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "MODEL_BY_KIND",
    "SORT_ORDER_BY_KIND",
    "Account",
    "AccountInput",
    "Category",
    "CategoryInput",
    "RecordKind",
    "StoredRecord",
    "Transaction",
    "TransactionInput",
    "TransactionKind",
    "sort_records",
    # Summaries
    "AccountShare",
    "CategoryBreakdown",
    "CategoryShare",
    "CategoryTotals",
    "MonthlyTotals",
    "PeriodSummary",
    "YearlyReport",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
