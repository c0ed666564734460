"""
Data Models Package

This package contains all Pydantic models used in the Personal Ledger system.
All data flowing through the system must conform to these schemas.
"""

from src.models.ledger import (
    DEFAULT_ACCOUNT_TYPES,
    DEFAULT_CATEGORIES,
    Account,
    AccountUpdate,
    BalanceMismatch,
    ErrorKind,
    LedgerSnapshot,
    OperationResult,
    SessionUser,
    Transaction,
    TransactionType,
    TransactionUpdate,
    User,
)
from src.models.analytics import (
    BreakdownRow,
    CategorySpending,
    DashboardSummary,
    Insight,
    InsightSeverity,
    RecentTransaction,
    SpendingAnalytics,
    SpendingTrends,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_ACCOUNT_TYPES",
    "DEFAULT_CATEGORIES",
    "Account",
    "AccountUpdate",
    "BalanceMismatch",
    "ErrorKind",
    "LedgerSnapshot",
    "OperationResult",
    "SessionUser",
    "Transaction",
    "TransactionType",
    "TransactionUpdate",
    "User",
    # Analytics models
    "BreakdownRow",
    "CategorySpending",
    "DashboardSummary",
    "Insight",
    "InsightSeverity",
    "RecentTransaction",
    "SpendingAnalytics",
    "SpendingTrends",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
