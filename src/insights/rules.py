"""
Insight Rules

Turns analytics output into short human-readable observations.

Rules are evaluated in a fixed order and every rule is checked; there is
no early exit, so the result can hold any subset of the five insights,
in rule order.
"""

from decimal import Decimal
from typing import Mapping, Optional

from src.config import InsightSettings
from src.models.analytics import (
    CategorySpending,
    Insight,
    InsightSeverity,
    SpendingAnalytics,
)


def _highest_category(highest: CategorySpending, currency: str) -> Optional[Insight]:
    if highest.is_empty:
        return None
    return Insight(
        severity=InsightSeverity.INFO,
        rule="highest_category",
        message=f"Highest spending in {highest.category} ({currency}{highest.amount:.2f})",
    )


def _expenses_exceed_income(analytics: SpendingAnalytics) -> Optional[Insight]:
    if not (analytics.total_debit > analytics.total_credit and analytics.total_credit > 0):
        return None
    return Insight(
        severity=InsightSeverity.WARNING,
        rule="expenses_exceed_income",
        message="Your expenses exceed your income. Consider reducing expenses.",
    )


def _savings_rate(analytics: SpendingAnalytics) -> Optional[Insight]:
    if analytics.total_credit <= 0:
        return None
    return Insight(
        severity=InsightSeverity.INFO,
        rule="savings_rate",
        message=f"Savings rate: {analytics.savings_percentage}% of income",
    )


def _watched_category_share(
    analytics: SpendingAnalytics,
    category_spending: Mapping[str, Decimal],
    settings: InsightSettings,
) -> Optional[Insight]:
    spent = category_spending.get(settings.watched_category)
    if not spent:
        return None
    limit = analytics.total_debit * Decimal(str(settings.watched_category_share))
    if spent <= limit:
        return None
    return Insight(
        severity=InsightSeverity.SUGGESTION,
        rule="watched_category_share",
        message=(
            f"Consider reducing {settings.watched_category.lower()} expenses "
            "to optimize budget."
        ),
    )


def _low_savings(analytics: SpendingAnalytics, settings: InsightSettings) -> Optional[Insight]:
    if analytics.total_credit <= 0:
        return None
    if analytics.savings_percentage >= Decimal(str(settings.low_savings_rate)):
        return None
    gap = settings.target_savings_rate - settings.low_savings_rate
    return Insight(
        severity=InsightSeverity.SUGGESTION,
        rule="low_savings",
        message=(
            f"Try to increase savings by at least {gap:.0f}% "
            f"to reach {settings.target_savings_rate:.0f}% savings rate."
        ),
    )


def generate_insights(
    analytics: SpendingAnalytics,
    highest: CategorySpending,
    category_spending: Mapping[str, Decimal],
    settings: Optional[InsightSettings] = None,
    currency_symbol: str = "₹",
) -> list[Insight]:
    """
    Evaluate all rules against one set of analytics.

    Args:
        analytics: Totals and savings rate
        highest: Highest spending category (or the "N/A" sentinel)
        category_spending: Debit totals per category
        settings: Rule thresholds; defaults when None
        currency_symbol: Prefix for amounts in messages

    Returns:
        Insights in rule order; empty when nothing applies
    """
    settings = settings or InsightSettings()
    candidates = [
        _highest_category(highest, currency_symbol),
        _expenses_exceed_income(analytics),
        _savings_rate(analytics),
        _watched_category_share(analytics, category_spending, settings),
        _low_savings(analytics, settings),
    ]
    return [insight for insight in candidates if insight is not None]
