"""
Data Models Package

This package contains all Pydantic models used by IronWallet.
All data flowing through the system must conform to these schemas.
"""

from ironwallet.models.finance import (
    CATEGORY_ORDER,
    DEFAULT_CATEGORIES,
    BudgetCategory,
    CategoryAllocation,
    CategoryTemplate,
    CategoryType,
    DashboardSummary,
    IncomeAllocation,
    IncomeSplit,
    LockedSaving,
    LockStatus,
    MonthlyReport,
    MonthlyReportView,
    Profile,
    ReportInsight,
    SavingsOverview,
    Transaction,
    TransactionFilter,
    TransactionPage,
    TransactionType,
    TreatWallet,
    TreatWalletOverview,
    ValidationIssue,
    ValidationResult,
    default_percentages,
    utcnow,
)
from ironwallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Wallet models
    "CATEGORY_ORDER",
    "DEFAULT_CATEGORIES",
    "BudgetCategory",
    "CategoryAllocation",
    "CategoryTemplate",
    "CategoryType",
    "DashboardSummary",
    "IncomeAllocation",
    "IncomeSplit",
    "LockedSaving",
    "LockStatus",
    "MonthlyReport",
    "MonthlyReportView",
    "Profile",
    "ReportInsight",
    "SavingsOverview",
    "Transaction",
    "TransactionFilter",
    "TransactionPage",
    "TransactionType",
    "TreatWallet",
    "TreatWalletOverview",
    "ValidationIssue",
    "ValidationResult",
    "default_percentages",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
