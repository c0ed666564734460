"""Analytics package: pure aggregations over ledger snapshots."""

from src.analytics.engine import (
    AnalyticsEngine,
    account_name_for,
    category_wise_spending,
    daily_spending,
    expected_balance,
    filter_by_date_range,
    highest_spending_category,
    monthly_spending,
    quarterly_spending,
    recent_transactions,
    spending_analytics,
    spending_breakdown,
    spending_by_payment_method,
    total_balance,
    week_start,
    weekly_spending,
)

__all__ = [
    "AnalyticsEngine",
    "account_name_for",
    "category_wise_spending",
    "daily_spending",
    "expected_balance",
    "filter_by_date_range",
    "highest_spending_category",
    "monthly_spending",
    "quarterly_spending",
    "recent_transactions",
    "spending_analytics",
    "spending_breakdown",
    "spending_by_payment_method",
    "total_balance",
    "week_start",
    "weekly_spending",
]
