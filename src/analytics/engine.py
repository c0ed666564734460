"""
Analytics Engine

DESIGN DECISION: Analytics are PURE functions of a snapshot.
They never read storage, never write anything, and never mutate the
records they are given, so they are safe to call repeatedly and from
several threads at once. The ledger store hands out consistent
snapshots; this module only aggregates them.

Every time-bucketed and category aggregate considers DEBITS only.
Buckets with no transactions are absent (no zero-filling).
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

from src.models.analytics import (
    NO_CATEGORY,
    BreakdownRow,
    CategorySpending,
    SpendingAnalytics,
)
from src.models.ledger import (
    OTHER_CATEGORY,
    UNKNOWN_ACCOUNT,
    UNKNOWN_METHOD,
    Account,
    LedgerSnapshot,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")
CENT = Decimal("0.01")


def _debits(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.type == TransactionType.DEBIT]


def _sum_debits_by(
    transactions: Iterable[Transaction],
    key: Callable[[Transaction], str],
) -> dict[str, Decimal]:
    """Sum debit amounts per key, keys in first-seen order."""
    totals: dict[str, Decimal] = {}
    for t in _debits(transactions):
        k = key(t)
        totals[k] = totals.get(k, ZERO) + t.amount
    return totals


# =============================================================================
# BUCKET KEYS
# =============================================================================

def week_start(day: date) -> date:
    """Sunday on or before the given day."""
    # weekday(): Monday=0 ... Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def month_key(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def quarter_key(day: date) -> str:
    quarter = (day.month - 1) // 3 + 1
    return f"{day.year}-Q{quarter}"


# =============================================================================
# TOTALS
# =============================================================================

def total_balance(accounts: Iterable[Account]) -> Decimal:
    """Sum of all account balances."""
    return sum((a.balance for a in accounts), ZERO)


def spending_analytics(transactions: Iterable[Transaction]) -> SpendingAnalytics:
    """Credit and debit totals, net savings and the savings rate."""
    total_credit = ZERO
    total_debit = ZERO
    for t in transactions:
        if t.type == TransactionType.CREDIT:
            total_credit += t.amount
        else:
            total_debit += t.amount

    net_savings = total_credit - total_debit
    if total_credit > 0:
        savings_percentage = (net_savings / total_credit * 100).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
    else:
        savings_percentage = Decimal("0.00")

    return SpendingAnalytics(
        total_credit=total_credit,
        total_debit=total_debit,
        net_savings=net_savings,
        savings_percentage=savings_percentage,
    )


def expected_balance(account: Account, transactions: Iterable[Transaction]) -> Decimal:
    """Initial balance plus the signed amounts of the account's transactions."""
    return account.initial_balance + sum(
        (t.signed_amount for t in transactions if t.account_id == account.id),
        ZERO,
    )


# =============================================================================
# CATEGORIES AND BREAKDOWNS
# =============================================================================

def category_wise_spending(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Debit totals per category."""
    return _sum_debits_by(transactions, lambda t: t.category or OTHER_CATEGORY)


def highest_spending_category(transactions: Iterable[Transaction]) -> CategorySpending:
    """
    The category with the largest debit total.

    Returns the "N/A" sentinel with amount 0 when there are no debits.
    On ties the first category reaching the maximum is kept.
    """
    highest = CategorySpending(category=NO_CATEGORY, amount=ZERO)
    for category, amount in category_wise_spending(transactions).items():
        if amount > highest.amount:
            highest = CategorySpending(category=category, amount=amount)
    return highest


def spending_breakdown(transactions: Iterable[Transaction]) -> list[BreakdownRow]:
    """Debits grouped by (category, payment method), first-occurrence order."""
    groups: dict[tuple[str, str], BreakdownRow] = {}
    for t in _debits(transactions):
        category = t.category or OTHER_CATEGORY
        method = t.payment_method or UNKNOWN_METHOD
        row = groups.get((category, method))
        if row is None:
            row = BreakdownRow(category=category, method=method)
            groups[(category, method)] = row
        row.amount += t.amount
        row.count += 1
    return list(groups.values())


def spending_by_payment_method(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Debit totals per payment method."""
    return _sum_debits_by(transactions, lambda t: t.payment_method or UNKNOWN_METHOD)


# =============================================================================
# TIME BUCKETS
# =============================================================================

def daily_spending(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    return _sum_debits_by(transactions, lambda t: t.date.isoformat())


def weekly_spending(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Debit totals keyed by the Sunday that starts each week."""
    return _sum_debits_by(transactions, lambda t: week_start(t.date).isoformat())


def monthly_spending(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    return _sum_debits_by(transactions, lambda t: month_key(t.date))


def quarterly_spending(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    return _sum_debits_by(transactions, lambda t: quarter_key(t.date))


# =============================================================================
# LISTS
# =============================================================================

def filter_by_date_range(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
) -> list[Transaction]:
    """Transactions dated within [start, end], inclusive."""
    return [t for t in transactions if start <= t.date <= end]


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 10,
) -> list[Transaction]:
    """Newest first by date, then by creation time."""
    ordered = sorted(
        transactions,
        key=lambda t: (t.date, t.created_at),
        reverse=True,
    )
    return ordered[:limit]


def account_name_for(transaction: Transaction, accounts: Iterable[Account]) -> str:
    """Bank name of the transaction's account, or "Unknown" if it was deleted."""
    for account in accounts:
        if account.id == transaction.account_id:
            return account.bank_name
    return UNKNOWN_ACCOUNT


# =============================================================================
# SNAPSHOT WRAPPER
# =============================================================================

class AnalyticsEngine:
    """
    The analytics functions bound to one ledger snapshot.

    Mirrors the no-argument calls a dashboard makes
    (`engine.spending_analytics()`, `engine.monthly_spending()`, ...).
    The snapshot is copied on construction so later changes to the
    caller's lists cannot leak into results.
    """

    def __init__(self, snapshot: LedgerSnapshot):
        self._accounts = list(snapshot.accounts)
        self._transactions = list(snapshot.transactions)

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts)

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    def total_balance(self) -> Decimal:
        return total_balance(self._accounts)

    def spending_analytics(self) -> SpendingAnalytics:
        return spending_analytics(self._transactions)

    def category_wise_spending(self) -> dict[str, Decimal]:
        return category_wise_spending(self._transactions)

    def highest_spending_category(self) -> CategorySpending:
        return highest_spending_category(self._transactions)

    def daily_spending(self) -> dict[str, Decimal]:
        return daily_spending(self._transactions)

    def weekly_spending(self) -> dict[str, Decimal]:
        return weekly_spending(self._transactions)

    def monthly_spending(self) -> dict[str, Decimal]:
        return monthly_spending(self._transactions)

    def quarterly_spending(self) -> dict[str, Decimal]:
        return quarterly_spending(self._transactions)

    def spending_breakdown(self) -> list[BreakdownRow]:
        return spending_breakdown(self._transactions)

    def spending_by_payment_method(self) -> dict[str, Decimal]:
        return spending_by_payment_method(self._transactions)

    def recent_transactions(self, limit: int = 10) -> list[Transaction]:
        return recent_transactions(self._transactions, limit=limit)

    def account_name_for(self, transaction: Transaction) -> str:
        return account_name_for(transaction, self._accounts)

    def expected_balance(self, account_id: UUID) -> Optional[Decimal]:
        """Invariant value for one account, or None if it is not in the snapshot."""
        for account in self._accounts:
            if account.id == account_id:
                return expected_balance(account, self._transactions)
        return None
