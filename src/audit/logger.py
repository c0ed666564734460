"""
Audit Logger

DESIGN DECISION: Every mutation of the ledger is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability
3. A record of refused operations

The audit logger:
- Runs inline with the operation (the ledger is synchronous)
- Gracefully handles failures (doesn't crash the app if logging fails)
- Tags every event with the acting user
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_user_registered(self, user_id: UUID, email: str) -> None:
        self.log(AuditEventBuilder.user_registered(user_id=user_id, email=email))

    def log_registration_rejected(self, email: str, reason: str) -> None:
        self.log(AuditEventBuilder.registration_rejected(email=email, reason=reason))

    def log_user_logged_in(self, user_id: UUID) -> None:
        self.log(AuditEventBuilder.user_logged_in(user_id=user_id))

    def log_login_failed(self, email: str) -> None:
        self.log(AuditEventBuilder.login_failed(email=email))

    def log_user_logged_out(self, user_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.user_logged_out(user_id=user_id))

    def log_account_created(
        self,
        account_id: UUID,
        user_id: UUID,
        bank_name: str,
        initial_balance: Decimal,
    ) -> None:
        """Log a new account."""
        event = AuditEventBuilder.account_created(
            account_id=account_id,
            user_id=user_id,
            bank_name=bank_name,
            initial_balance=initial_balance,
        )
        self.log(event)

    def log_account_updated(
        self,
        account_id: UUID,
        user_id: UUID,
        changes: dict[str, Any],
    ) -> None:
        """Log a change to account display fields."""
        event = AuditEventBuilder.account_updated(
            account_id=account_id,
            user_id=user_id,
            changes=changes,
        )
        self.log(event)

    def log_account_deleted(
        self,
        account_id: UUID,
        user_id: UUID,
        orphaned_transactions: int,
    ) -> None:
        """Log account removal and how many transactions it leaves behind."""
        event = AuditEventBuilder.account_deleted(
            account_id=account_id,
            user_id=user_id,
            orphaned_transactions=orphaned_transactions,
        )
        self.log(event)

    def log_transaction_created(
        self,
        transaction_id: UUID,
        user_id: UUID,
        account_id: UUID,
        signed_amount: Decimal,
        new_balance: Decimal,
    ) -> None:
        """Log a new transaction and the balance it produced."""
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            user_id=user_id,
            account_id=account_id,
            signed_amount=signed_amount,
            new_balance=new_balance,
        )
        self.log(event)

    def log_transaction_updated(
        self,
        transaction_id: UUID,
        user_id: UUID,
        changes: dict[str, Any],
        balances: dict[str, str],
    ) -> None:
        """Log a transaction edit with the resulting balances."""
        event = AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            user_id=user_id,
            changes=changes,
            balances=balances,
        )
        self.log(event)

    def log_transaction_deleted(
        self,
        transaction_id: UUID,
        user_id: UUID,
        reversed_amount: Decimal,
    ) -> None:
        """Log a transaction removal."""
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            user_id=user_id,
            reversed_amount=reversed_amount,
        )
        self.log(event)

    def log_operation_rejected(
        self,
        operation: str,
        error_code: str,
        message: str,
        user_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation that was refused before any mutation."""
        event = AuditEventBuilder.operation_rejected(
            operation=operation,
            error_code=error_code,
            message=message,
            user_id=user_id,
        )
        self.log(event)

    def log_balance_mismatch(
        self,
        account_id: UUID,
        user_id: UUID,
        stored: Decimal,
        expected: Decimal,
    ) -> None:
        """Log an account whose balance disagrees with its transactions."""
        event = AuditEventBuilder.balance_mismatch(
            account_id=account_id,
            user_id=user_id,
            stored=stored,
            expected=expected,
        )
        self.log(event)
