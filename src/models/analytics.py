"""
Analytics Models

Result shapes returned by the analytics engine, the insight rules and
the dashboard flow. None of these are persisted; they are derived from
a ledger snapshot every time.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from src.models.ledger import Account, Transaction


NO_CATEGORY = "N/A"


class SpendingAnalytics(BaseModel):
    """Credit/debit totals and the savings rate."""
    total_credit: Decimal = Decimal("0")
    total_debit: Decimal = Decimal("0")
    net_savings: Decimal = Decimal("0")
    savings_percentage: Decimal = Field(
        default=Decimal("0.00"),
        description="net_savings / total_credit * 100, two decimals; 0 without income"
    )


class CategorySpending(BaseModel):
    """A category with its summed debit amount."""
    category: str
    amount: Decimal

    @property
    def is_empty(self) -> bool:
        """True for the sentinel returned when there are no debits."""
        return self.category == NO_CATEGORY


class BreakdownRow(BaseModel):
    """Debits grouped by category and payment method."""
    category: str
    method: str
    amount: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)


class InsightSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUGGESTION = "suggestion"


class Insight(BaseModel):
    """A human-readable observation derived from analytics."""
    severity: InsightSeverity
    message: str
    rule: str = Field(..., description="Identifier of the rule that fired")


class RecentTransaction(BaseModel):
    """A transaction paired with the bank name of its account."""
    transaction: Transaction
    account_name: str


class DashboardSummary(BaseModel):
    """Everything the dashboard cards and lists show, from one snapshot."""
    total_balance: Decimal
    analytics: SpendingAnalytics
    highest_category: CategorySpending
    category_spending: dict[str, Decimal] = Field(default_factory=dict)
    insights: list[Insight] = Field(default_factory=list)
    recent_transactions: list[RecentTransaction] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)

    @property
    def is_negative_savings(self) -> bool:
        return self.analytics.net_savings < 0


class SpendingTrends(BaseModel):
    """Time-bucketed debit totals and breakdown tables."""
    daily: dict[str, Decimal] = Field(default_factory=dict)
    weekly: dict[str, Decimal] = Field(default_factory=dict)
    monthly: dict[str, Decimal] = Field(default_factory=dict)
    quarterly: dict[str, Decimal] = Field(default_factory=dict)
    breakdown: list[BreakdownRow] = Field(default_factory=list)
    by_payment_method: dict[str, Decimal] = Field(default_factory=dict)
