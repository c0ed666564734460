"""
Tests for Personal Ledger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (use mocks)
"""

import json
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from src.models.analytics import (
    NO_CATEGORY,
    CategorySpending,
    DashboardSummary,
    SpendingAnalytics,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.ledger import (
    Account,
    AccountUpdate,
    BalanceMismatch,
    ErrorKind,
    OperationResult,
    Transaction,
    TransactionType,
    TransactionUpdate,
    User,
)


class TestLedgerModels:
    """Tests for account and transaction models."""

    def test_account_creation(self):
        """Test Account model creation."""
        account = Account(
            user_id=uuid4(),
            bank_name="  HDFC  ",
            balance=Decimal("1000"),
            initial_balance=Decimal("1000"),
        )
        assert account.bank_name == "HDFC"
        assert account.account_type == "Savings"

    def test_account_rejects_negative_initial_balance(self):
        with pytest.raises(ValueError):
            Account(
                user_id=uuid4(),
                bank_name="HDFC",
                balance=Decimal("-1"),
                initial_balance=Decimal("-1"),
            )

    def test_account_allows_negative_balance(self):
        """Debits may take a balance below zero."""
        account = Account(
            user_id=uuid4(),
            bank_name="HDFC",
            balance=Decimal("-50"),
            initial_balance=Decimal("0"),
        )
        assert account.balance == Decimal("-50")

    def test_transaction_signed_amount(self):
        debit = Transaction(
            user_id=uuid4(),
            account_id=uuid4(),
            type=TransactionType.DEBIT,
            amount=Decimal("200"),
            date=date(2024, 1, 1),
        )
        credit = debit.model_copy(update={"type": TransactionType.CREDIT})
        assert debit.signed_amount == Decimal("-200")
        assert credit.signed_amount == Decimal("200")

    def test_transaction_defaults_blank_fields(self):
        """Blank category falls back to Other, blank method to None."""
        txn = Transaction(
            user_id=uuid4(),
            account_id=uuid4(),
            type=TransactionType.DEBIT,
            category="   ",
            payment_method="",
            amount=Decimal("10"),
            date=date(2024, 1, 1),
        )
        assert txn.category == "Other"
        assert txn.payment_method is None

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_transaction_rejects_non_positive_amount(self, amount):
        with pytest.raises(ValueError):
            Transaction(
                user_id=uuid4(),
                account_id=uuid4(),
                type=TransactionType.DEBIT,
                amount=Decimal(amount),
                date=date(2024, 1, 1),
            )

    def test_transaction_json_dump_is_serializable(self):
        txn = Transaction(
            user_id=uuid4(),
            account_id=uuid4(),
            type=TransactionType.CREDIT,
            amount=Decimal("12.50"),
            date=date(2024, 3, 9),
        )
        dumped = txn.model_dump(mode="json")
        json.dumps(dumped)
        assert dumped["date"] == "2024-03-09"
        assert dumped["type"] == "credit"
        assert Transaction.model_validate(dumped) == txn

    def test_patches_forbid_unknown_fields(self):
        """Balances cannot be smuggled in through a patch."""
        with pytest.raises(ValueError):
            AccountUpdate(balance=Decimal("5"))
        with pytest.raises(ValueError):
            TransactionUpdate(user_id=uuid4())

    @pytest.mark.parametrize("value", ["Debit", "DEBIT", " debit "])
    def test_transaction_update_normalizes_type(self, value):
        assert TransactionUpdate(type=value).type == TransactionType.DEBIT

    def test_user_session_projection_drops_password(self):
        user = User(name="Asha", email="a@x.com", password_hash="hash")
        session = user.to_session_user()
        assert session.id == user.id
        assert "password_hash" not in session.model_dump()


class TestResultModels:
    """Tests for results and derived shapes."""

    def test_operation_result_helpers(self):
        ok = OperationResult.ok("done", data=[1])
        failed = OperationResult.fail(ErrorKind.NOT_FOUND, "Account not found")
        assert ok.success and ok.error is None and ok.data == [1]
        assert not failed.success
        assert failed.error == ErrorKind.NOT_FOUND

    def test_balance_mismatch_difference(self):
        mismatch = BalanceMismatch(
            account_id=uuid4(),
            bank_name="HDFC",
            stored_balance=Decimal("900"),
            expected_balance=Decimal("800"),
        )
        assert mismatch.difference == Decimal("100")

    def test_category_sentinel(self):
        assert CategorySpending(category=NO_CATEGORY, amount=Decimal("0")).is_empty
        assert not CategorySpending(category="Food", amount=Decimal("1")).is_empty

    def test_negative_savings_flag(self):
        summary = DashboardSummary(
            total_balance=Decimal("0"),
            analytics=SpendingAnalytics(net_savings=Decimal("-1")),
            highest_category=CategorySpending(category=NO_CATEGORY, amount=Decimal("0")),
        )
        assert summary.is_negative_savings


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            description="Account added",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        user_id = uuid4()
        event = AuditEventBuilder.user_logged_in(user_id)
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "user_logged_in"
        assert log_dict["user_id"] == str(user_id)
        assert log_dict["entity_type"] == "user"

    def test_audit_event_to_sheets_row(self):
        event = AuditEventBuilder.transaction_deleted(uuid4(), uuid4(), Decimal("200"))
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "transaction_deleted"
        assert json.loads(row[8]) == {"reversed_amount": "200"}

    def test_account_deleted_with_orphans_is_warning(self):
        assert AuditEventBuilder.account_deleted(uuid4(), uuid4(), 0).severity == AuditSeverity.INFO
        assert AuditEventBuilder.account_deleted(uuid4(), uuid4(), 3).severity == AuditSeverity.WARNING

    def test_operation_rejected_carries_error(self):
        event = AuditEventBuilder.operation_rejected(
            "add_transaction", "not_found", "Account not found"
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "not_found"
        assert event.details == {"operation": "add_transaction"}
