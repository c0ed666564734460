"""
Main Orchestrator for Personal Ledger

This module ties together all the components and defines the
end-to-end flows the UI needs:
1. Dashboard summary (snapshot → analytics → insights)
2. Spending trends (snapshot → time buckets and breakdowns)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The UI never touches storage directly; it goes through the
  AuthService and the LedgerStore
- Every dashboard figure comes from ONE snapshot, so cards, lists and
  insights can never disagree with each other
- Analytics never mutate anything

This is the "glue" that wires the storage backend chosen in settings
to the services.
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from src.analytics import AnalyticsEngine
from src.audit import AuditLogger
from src.auth import AuthService
from src.config import Settings, get_settings
from src.insights import generate_insights
from src.ledger import LedgerStore
from src.models.analytics import (
    DashboardSummary,
    RecentTransaction,
    SpendingTrends,
)
from src.models.ledger import LedgerSnapshot, OperationResult, SessionUser
from src.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class DashboardFlow:
    """
    Builds the dashboard views for the acting user.

    Flow:
    1. Snapshot → LedgerStore.snapshot (consistent read)
    2. Aggregate → AnalyticsEngine over that snapshot
    3. Advise → insight rules over the aggregates
    """

    def __init__(
        self,
        ledger_store: LedgerStore,
        settings: Optional[Settings] = None,
    ):
        self._ledger_store = ledger_store
        settings = settings or get_settings()
        self._app_settings = settings.app
        self._insight_settings = settings.insights

    def _engine_for(self, user: Optional[SessionUser]) -> tuple[OperationResult, Optional[AnalyticsEngine]]:
        result = self._ledger_store.snapshot(user)
        if not result.success:
            return result, None
        snapshot: LedgerSnapshot = result.data
        return result, AnalyticsEngine(snapshot)

    def build_summary(self, user: Optional[SessionUser]) -> OperationResult:
        """
        Summary cards, insights and the recent-transactions list.

        Returns:
            OperationResult with a DashboardSummary in `data`
        """
        result, engine = self._engine_for(user)
        if engine is None:
            return result

        analytics = engine.spending_analytics()
        highest = engine.highest_spending_category()
        category_spending = engine.category_wise_spending()
        insights = generate_insights(
            analytics,
            highest,
            category_spending,
            settings=self._insight_settings,
            currency_symbol=self._app_settings.currency_symbol,
        )
        recent = [
            RecentTransaction(
                transaction=t,
                account_name=engine.account_name_for(t),
            )
            for t in engine.recent_transactions(self._app_settings.recent_transactions_limit)
        ]

        summary = DashboardSummary(
            total_balance=engine.total_balance(),
            analytics=analytics,
            highest_category=highest,
            category_spending=category_spending,
            insights=insights,
            recent_transactions=recent,
            accounts=engine.accounts,
        )
        return OperationResult.ok("Dashboard ready", data=summary)

    def build_trends(self, user: Optional[SessionUser]) -> OperationResult:
        """
        Time-bucketed debit series and breakdown tables.

        Returns:
            OperationResult with SpendingTrends in `data`
        """
        result, engine = self._engine_for(user)
        if engine is None:
            return result

        trends = SpendingTrends(
            daily=engine.daily_spending(),
            weekly=engine.weekly_spending(),
            monthly=engine.monthly_spending(),
            quarterly=engine.quarterly_spending(),
            breakdown=engine.spending_breakdown(),
            by_payment_method=engine.spending_by_payment_method(),
        )
        return OperationResult.ok("Trends ready", data=trends)


def _google_sheets_storage(
    settings: Settings,
) -> tuple[LedgerStorageInterface, AuditStorageInterface]:
    # gspread is only imported when this backend is selected
    from src.services.storage.google_sheets import (
        GoogleSheetsAuditStorage,
        GoogleSheetsClient,
        GoogleSheetsLedgerStorage,
    )

    client = GoogleSheetsClient(settings.google_sheets)
    storage = GoogleSheetsLedgerStorage(client)
    storage.ensure_initialized()
    return storage, GoogleSheetsAuditStorage(client)


def create_storage(
    settings: Settings,
    use_storage: bool = True,
) -> tuple[LedgerStorageInterface, Optional[AuditStorageInterface]]:
    """
    Pick the storage backend named in settings.

    Falls back to in-memory storage when persistence is disabled or the
    Google Sheets backend cannot be reached.
    """
    backend = settings.storage.backend
    if not use_storage or backend == "memory":
        return InMemoryLedgerStorage(), InMemoryAuditStorage()

    if backend == "json":
        # The JSON backend keeps no audit trail of its own; events are
        # still written to the structured log.
        return JsonFileLedgerStorage(settings.storage.json_path), None

    try:
        return _google_sheets_storage(settings)
    except (StorageError, ValidationError) as e:
        # Missing credentials or an unreachable spreadsheet
        logger.warning(
            "storage_unavailable",
            backend=backend,
            error=str(e),
            fallback="memory",
        )
        return InMemoryLedgerStorage(), InMemoryAuditStorage()


def create_app_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> tuple[AuthService, LedgerStore, DashboardFlow]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; the cached settings when None
        use_storage: Set to False to keep everything in memory
                    (testing, demos)

    Returns:
        (auth_service, ledger_store, dashboard_flow)
    """
    settings = settings or get_settings()
    storage, audit_storage = create_storage(settings, use_storage)
    audit_logger = AuditLogger(audit_storage)

    auth_service = AuthService(
        storage,
        audit_logger=audit_logger,
        settings=settings.app,
    )
    ledger_store = LedgerStore(storage, audit_logger=audit_logger)
    dashboard_flow = DashboardFlow(ledger_store, settings=settings)

    return auth_service, ledger_store, dashboard_flow
