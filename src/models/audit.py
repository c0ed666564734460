"""
Audit Models for Personal Ledger

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of balance changes
2. Debugging information when a balance looks wrong
3. A record of refused operations and why they were refused

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger and session operation has its own event type.
    """
    # Users and sessions
    USER_REGISTERED = "user_registered"
    REGISTRATION_REJECTED = "registration_rejected"
    USER_LOGGED_IN = "user_logged_in"
    LOGIN_FAILED = "login_failed"
    USER_LOGGED_OUT = "user_logged_out"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Refusals and integrity
    OPERATION_REJECTED = "operation_rejected"
    BALANCE_MISMATCH = "balance_mismatch"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('user', 'account', 'transaction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Who acted
    user_id: Optional[UUID] = Field(
        default=None,
        description="Acting user, when there is one"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, description, details_json, error_code, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.user_id) if self.user_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_code or "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, user_id, "HDFC", "1000")
        event = AuditEventBuilder.operation_rejected("add_transaction", "not_found", msg, user_id)
    """

    @staticmethod
    def user_registered(user_id: UUID, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description=f"User registered: {email}",
            details={"email": email},
        )

    @staticmethod
    def registration_rejected(email: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description="Registration rejected",
            details={"email": email},
            error_message=reason,
        )

    @staticmethod
    def user_logged_in(user_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_IN,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User logged in",
        )

    @staticmethod
    def login_failed(email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description="Login failed",
            details={"email": email},
        )

    @staticmethod
    def user_logged_out(user_id: Optional[UUID]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_OUT,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User logged out",
        )

    @staticmethod
    def account_created(
        account_id: UUID,
        user_id: UUID,
        bank_name: str,
        initial_balance: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            user_id=user_id,
            description=f"Account added: {bank_name}",
            details={
                "bank_name": bank_name,
                "initial_balance": str(initial_balance),
            },
        )

    @staticmethod
    def account_updated(
        account_id: UUID,
        user_id: UUID,
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            user_id=user_id,
            description=f"Account updated: {', '.join(sorted(changes)) or 'no changes'}",
            details={"changes": changes},
        )

    @staticmethod
    def account_deleted(
        account_id: UUID,
        user_id: UUID,
        orphaned_transactions: int,
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if orphaned_transactions else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            severity=severity,
            entity_type="account",
            entity_id=account_id,
            user_id=user_id,
            description=f"Account deleted ({orphaned_transactions} transactions left without account)",
            details={"orphaned_transactions": orphaned_transactions},
        )

    @staticmethod
    def transaction_created(
        transaction_id: UUID,
        user_id: UUID,
        account_id: UUID,
        signed_amount: Decimal,
        new_balance: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Transaction recorded: {signed_amount:+}",
            details={
                "account_id": str(account_id),
                "signed_amount": str(signed_amount),
                "new_balance": str(new_balance),
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        user_id: UUID,
        changes: dict[str, Any],
        balances: dict[str, str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Transaction updated: {', '.join(sorted(changes)) or 'no changes'}",
            details={"changes": changes, "balances": balances},
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        user_id: UUID,
        reversed_amount: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Transaction deleted, balance adjusted by {reversed_amount:+}",
            details={"reversed_amount": str(reversed_amount)},
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_code: str,
        message: str,
        user_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            description=f"Operation rejected: {operation}",
            details={"operation": operation},
            error_code=error_code,
            error_message=message,
        )

    @staticmethod
    def balance_mismatch(
        account_id: UUID,
        user_id: UUID,
        stored: Decimal,
        expected: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_MISMATCH,
            severity=AuditSeverity.ERROR,
            entity_type="account",
            entity_id=account_id,
            user_id=user_id,
            description="Stored balance does not match transactions",
            details={"stored": str(stored), "expected": str(expected)},
        )
