"""
Tests for the LedgerStore

Every scenario checks the balance invariant as well as the direct
effect of the operation.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from src.analytics import category_wise_spending, expected_balance, spending_analytics
from src.ledger import LedgerStore
from src.models.audit import AuditEventType
from src.models.ledger import (
    ErrorKind,
    LedgerSnapshot,
    TransactionType,
    TransactionUpdate,
)
from src.services.storage import Collection, InMemoryLedgerStorage, StorageError


def assert_invariant(store, user):
    result = store.verify_balances(user)
    assert result.success
    assert result.data == []


def balance_of(store, user, account_id) -> Decimal:
    return store.get_account(user, account_id).data.balance


def add_debit(store, user, account, amount, category="Food", **kwargs):
    result = store.add_transaction(
        user,
        account.id,
        TransactionType.DEBIT,
        category,
        kwargs.pop("payment_method", "UPI"),
        amount,
        kwargs.pop("transaction_date", date(2024, 1, 10)),
        **kwargs,
    )
    assert result.success, result.message
    return result.data


def add_credit(store, user, account, amount, category="Salary"):
    result = store.add_transaction(
        user,
        account.id,
        TransactionType.CREDIT,
        category,
        "Net Banking",
        amount,
        date(2024, 1, 1),
    )
    assert result.success, result.message
    return result.data


class TestAccounts:
    """Account creation, editing and deletion."""

    def test_add_account_starts_at_initial_balance(self, store, user):
        result = store.add_account(user, "Bank1", "Savings", "1000.50")
        assert result.success
        assert result.message == "Account added successfully"
        assert result.data.balance == Decimal("1000.50")
        assert result.data.initial_balance == Decimal("1000.50")
        assert result.data.user_id == user.id

    def test_add_account_defaults_type(self, store, user):
        result = store.add_account(user, "Bank1", "", 0)
        assert result.success
        assert result.data.account_type == "Savings"

    @pytest.mark.parametrize("bank_name", ["", "   ", None])
    def test_add_account_requires_bank_name(self, store, user, bank_name):
        result = store.add_account(user, bank_name, "Savings", 100)
        assert not result.success
        assert result.error == ErrorKind.INVALID_INPUT
        assert result.message == "Bank name is required"

    def test_add_account_rejects_negative_balance(self, store, user):
        result = store.add_account(user, "Bank1", "Savings", -1)
        assert result.error == ErrorKind.INVALID_INPUT
        assert result.message == "Balance cannot be negative"

    @pytest.mark.parametrize("balance", ["abc", "", None, True, "NaN", float("inf")])
    def test_add_account_rejects_unparseable_balance(self, store, user, balance):
        result = store.add_account(user, "Bank1", "Savings", balance)
        assert result.error == ErrorKind.INVALID_INPUT

    def test_update_account_changes_display_fields_only(self, store, user, bank1):
        result = store.update_account(user, bank1.id, {"bank_name": "HDFC", "account_type": ""})
        assert result.success
        assert result.data.bank_name == "HDFC"
        assert result.data.account_type == "Savings"
        assert result.data.balance == Decimal("1000")

    def test_update_account_cannot_set_balance(self, store, user, bank1):
        result = store.update_account(user, bank1.id, {"balance": 5})
        assert result.error == ErrorKind.INVALID_INPUT
        assert balance_of(store, user, bank1.id) == Decimal("1000")

    def test_update_missing_account(self, store, user):
        result = store.update_account(user, uuid4(), {"bank_name": "X"})
        assert result.error == ErrorKind.NOT_FOUND
        assert result.message == "Account not found"

    def test_delete_account(self, store, user, bank1):
        result = store.delete_account(user, bank1.id)
        assert result.success
        assert store.get_accounts(user).data == []

    def test_get_accounts_is_idempotent(self, store, user, bank1):
        first = store.get_accounts(user).data
        second = store.get_accounts(user).data
        assert first == second

    def test_malformed_id_is_not_found(self, store, user):
        result = store.get_account(user, "not-a-uuid")
        assert result.error == ErrorKind.NOT_FOUND


class TestTransactions:
    """Transactions and their effect on balances."""

    def test_debit_then_credit_then_delete(self, store, user, bank1):
        """The Bank1 walk-through: 1000 → 800 → 1300 → 1500."""
        debit = add_debit(store, user, bank1, 200, category="Food")
        assert balance_of(store, user, bank1.id) == Decimal("800")
        transactions = store.get_transactions(user).data
        assert category_wise_spending(transactions) == {"Food": Decimal("200")}
        assert spending_analytics(transactions).total_debit == Decimal("200")

        add_credit(store, user, bank1, 500)
        assert balance_of(store, user, bank1.id) == Decimal("1300")
        analytics = spending_analytics(store.get_transactions(user).data)
        assert analytics.total_credit == Decimal("500")
        assert analytics.total_debit == Decimal("200")
        assert analytics.net_savings == Decimal("300")
        assert analytics.savings_percentage == Decimal("60.00")

        result = store.delete_transaction(user, debit.id)
        assert result.success
        assert result.message == "Transaction deleted successfully"
        assert balance_of(store, user, bank1.id) == Decimal("1500")
        assert category_wise_spending(store.get_transactions(user).data) == {}
        assert_invariant(store, user)

    def test_add_then_delete_restores_state(self, store, user, bank1):
        before = store.snapshot(user).data
        txn = add_debit(store, user, bank1, "123.45")
        store.delete_transaction(user, txn.id)
        after = store.snapshot(user).data
        assert after == before

    def test_add_transaction_defaults(self, store, user, bank1):
        result = store.add_transaction(
            user, bank1.id, "DEBIT", "", "", "50", "2024-02-29", "  "
        )
        assert result.success
        txn = result.data
        assert txn.type == TransactionType.DEBIT
        assert txn.category == "Other"
        assert txn.payment_method is None
        assert txn.notes is None
        assert txn.date == date(2024, 2, 29)

    def test_add_transaction_accepts_datetime(self, store, user, bank1):
        result = store.add_transaction(
            user, bank1.id, "credit", "Salary", None, 10, datetime(2024, 5, 1, 9, 30)
        )
        assert result.data.date == date(2024, 5, 1)

    @pytest.mark.parametrize("amount", [0, -10, "0.00"])
    def test_add_transaction_requires_positive_amount(self, store, user, bank1, amount):
        result = store.add_transaction(
            user, bank1.id, "debit", "Food", "UPI", amount, date(2024, 1, 1)
        )
        assert result.error == ErrorKind.INVALID_INPUT
        assert result.message == "Amount must be greater than 0"
        assert balance_of(store, user, bank1.id) == Decimal("1000")

    @pytest.mark.parametrize("value", [None, "", "31-01-2024"])
    def test_add_transaction_requires_valid_date(self, store, user, bank1, value):
        result = store.add_transaction(user, bank1.id, "debit", "Food", "UPI", 5, value)
        assert result.error == ErrorKind.INVALID_INPUT

    def test_add_transaction_rejects_unknown_type(self, store, user, bank1):
        result = store.add_transaction(user, bank1.id, "transfer", "Food", "UPI", 5, date(2024, 1, 1))
        assert result.error == ErrorKind.INVALID_INPUT

    def test_add_transaction_to_missing_account(self, store, user):
        result = store.add_transaction(user, uuid4(), "debit", "Food", "UPI", 5, date(2024, 1, 1))
        assert result.error == ErrorKind.NOT_FOUND
        assert store.get_transactions(user).data == []

    @pytest.mark.parametrize("new_type", ["credit", "Credit", " CREDIT ", TransactionType.CREDIT])
    def test_flip_debit_to_credit(self, store, user, bank1, new_type):
        """Flipping the type moves the balance by twice the amount."""
        txn = add_debit(store, user, bank1, 100)
        assert balance_of(store, user, bank1.id) == Decimal("900")

        result = store.update_transaction(user, txn.id, {"type": new_type})
        assert result.success
        assert result.message == "Transaction updated successfully"
        assert balance_of(store, user, bank1.id) == Decimal("1100")
        assert_invariant(store, user)

    def test_update_amount(self, store, user, bank1):
        txn = add_debit(store, user, bank1, 100)
        store.update_transaction(user, txn.id, TransactionUpdate(amount=Decimal("250")))
        assert balance_of(store, user, bank1.id) == Decimal("750")
        assert_invariant(store, user)

    def test_update_ignores_blank_fields_but_clears_notes(self, store, user, bank1):
        txn = add_debit(store, user, bank1, 100, category="Rent", notes="June")
        result = store.update_transaction(
            user, txn.id, {"category": "", "payment_method": "", "notes": ""}
        )
        assert result.data.category == "Rent"
        assert result.data.payment_method == "UPI"
        assert result.data.notes is None

    def test_update_rejects_bad_amount_without_writing(self, store, user, bank1):
        txn = add_debit(store, user, bank1, 100)
        result = store.update_transaction(user, txn.id, {"amount": "-3", "type": "credit"})
        assert result.error == ErrorKind.INVALID_INPUT
        assert balance_of(store, user, bank1.id) == Decimal("900")
        assert store.get_transaction(user, txn.id).data.type == TransactionType.DEBIT

    def test_update_missing_transaction(self, store, user):
        result = store.update_transaction(user, uuid4(), {"amount": 5})
        assert result.error == ErrorKind.NOT_FOUND
        assert result.message == "Transaction not found"

    def test_move_transaction_between_accounts(self, store, user, bank1):
        bank2 = store.add_account(user, "Bank2", "Current", 500).data
        txn = add_debit(store, user, bank1, 100)

        result = store.update_transaction(
            user, txn.id, {"account_id": str(bank2.id), "amount": 40}
        )
        assert result.success
        assert balance_of(store, user, bank1.id) == Decimal("1000")
        assert balance_of(store, user, bank2.id) == Decimal("460")
        assert_invariant(store, user)

    def test_move_to_foreign_account_is_not_found(self, store, user, other_user, bank1):
        foreign = store.add_account(other_user, "Theirs", "Savings", 10).data
        txn = add_debit(store, user, bank1, 100)

        result = store.update_transaction(user, txn.id, {"account_id": foreign.id})
        assert result.error == ErrorKind.NOT_FOUND
        assert balance_of(store, user, bank1.id) == Decimal("900")
        assert balance_of(store, other_user, foreign.id) == Decimal("10")

    def test_invariant_after_mixed_sequence(self, store, user, bank1):
        bank2 = store.add_account(user, "Bank2", "Wallet", 50).data
        a = add_debit(store, user, bank1, 30)
        b = add_credit(store, user, bank2, 70)
        c = add_debit(store, user, bank2, "19.99", category="Travel")
        store.update_transaction(user, a.id, {"type": "credit", "amount": 45})
        store.update_transaction(user, b.id, {"account_id": bank1.id})
        store.delete_transaction(user, c.id)
        store.update_transaction(user, c.id, {"amount": 1})
        assert_invariant(store, user)
        assert balance_of(store, user, bank1.id) == Decimal("1115")
        assert balance_of(store, user, bank2.id) == Decimal("50")

    def test_transactions_by_date_range(self, store, user, bank1):
        add_debit(store, user, bank1, 1, transaction_date=date(2024, 1, 1))
        add_debit(store, user, bank1, 2, transaction_date=date(2024, 1, 31))
        add_debit(store, user, bank1, 3, transaction_date=date(2024, 2, 1))

        result = store.get_transactions_by_date_range(user, "2024-01-01", date(2024, 1, 31))
        assert sorted(t.amount for t in result.data) == [Decimal("1"), Decimal("2")]

    def test_date_range_rejects_reversed_bounds(self, store, user):
        result = store.get_transactions_by_date_range(user, "2024-02-01", "2024-01-01")
        assert result.error == ErrorKind.INVALID_INPUT


class TestOrphanedTransactions:
    """Deleting an account keeps its transactions."""

    def test_transactions_survive_account_deletion(self, store, user, bank1):
        txn = add_debit(store, user, bank1, 200)
        store.delete_account(user, bank1.id)

        transactions = store.get_transactions(user).data
        assert [t.id for t in transactions] == [txn.id]
        assert spending_analytics(transactions).total_debit == Decimal("200")

    def test_orphan_can_be_edited_and_deleted(self, store, user, bank1):
        txn = add_debit(store, user, bank1, 200)
        store.delete_account(user, bank1.id)

        assert store.update_transaction(user, txn.id, {"amount": 20}).success
        assert store.get_transaction(user, txn.id).data.amount == Decimal("20")
        assert store.delete_transaction(user, txn.id).success
        assert store.get_transactions(user).data == []

    def test_orphan_can_be_moved_to_live_account(self, store, user, bank1):
        bank2 = store.add_account(user, "Bank2", "Savings", 0).data
        txn = add_debit(store, user, bank1, 200)
        store.delete_account(user, bank1.id)

        store.update_transaction(user, txn.id, {"account_id": bank2.id})
        assert balance_of(store, user, bank2.id) == Decimal("-200")
        assert_invariant(store, user)

    def test_delete_account_audits_orphans(self, store, user, bank1, audit_storage):
        add_debit(store, user, bank1, 1)
        add_debit(store, user, bank1, 2)
        store.delete_account(user, bank1.id)

        events = audit_storage.get_events_by_entity("account", bank1.id)
        deleted = [e for e in events if e.event_type == AuditEventType.ACCOUNT_DELETED]
        assert deleted[0].details == {"orphaned_transactions": 2}


class TestScoping:
    """Acting user requirements and isolation."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.add_account(None, "Bank1", "Savings", 1),
            lambda s: s.get_accounts(None),
            lambda s: s.get_transactions(None),
            lambda s: s.add_transaction(None, uuid4(), "debit", "Food", "UPI", 1, date(2024, 1, 1)),
            lambda s: s.update_transaction(None, uuid4(), {}),
            lambda s: s.delete_transaction(None, uuid4()),
            lambda s: s.delete_account(None, uuid4()),
            lambda s: s.snapshot(None),
        ],
    )
    def test_requires_acting_user(self, store, call):
        result = call(store)
        assert not result.success
        assert result.error == ErrorKind.NOT_AUTHENTICATED
        assert result.message == "User not logged in"

    def test_rejection_is_audited(self, store, audit_storage):
        store.get_accounts(None)
        event = audit_storage.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.OPERATION_REJECTED
        assert event.error_code == "not_authenticated"

    def test_users_see_only_their_records(self, store, user, other_user, bank1):
        add_debit(store, user, bank1, 10)
        assert store.get_accounts(other_user).data == []
        assert store.get_transactions(other_user).data == []
        assert store.get_account(other_user, bank1.id).error == ErrorKind.NOT_FOUND
        assert store.delete_account(other_user, bank1.id).error == ErrorKind.NOT_FOUND

    def test_snapshot_holds_both_collections(self, store, user, bank1):
        add_debit(store, user, bank1, 10)
        snapshot = store.snapshot(user).data
        assert isinstance(snapshot, LedgerSnapshot)
        assert len(snapshot.accounts) == 1
        assert len(snapshot.transactions) == 1


class TestIntegrity:
    """Balance verification and persisted shape."""

    def test_verify_balances_reports_tampering(self, store, user, bank1, ledger_storage, audit_storage):
        add_debit(store, user, bank1, 100)
        accounts = ledger_storage.load(Collection.ACCOUNTS)
        accounts[0]["balance"] = "5000"
        ledger_storage.save(Collection.ACCOUNTS, accounts)

        result = store.verify_balances(user)
        assert result.success
        assert len(result.data) == 1
        assert result.data[0].expected_balance == Decimal("900")
        assert result.data[0].difference == Decimal("4100")
        assert audit_storage.get_recent_events(limit=1)[0].event_type == AuditEventType.BALANCE_MISMATCH

    def test_records_are_persisted_as_json(self, store, user, bank1, ledger_storage):
        add_debit(store, user, bank1, "12.30")
        stored = ledger_storage.load(Collection.TRANSACTIONS)[0]
        assert stored["amount"] == "12.30"
        assert stored["type"] == "debit"
        assert stored["account_id"] == str(bank1.id)

    def test_new_store_reads_existing_data(self, ledger_storage, user, bank1, audit_logger):
        reopened = LedgerStore(ledger_storage, audit_logger=audit_logger)
        assert reopened.get_account(user, bank1.id).data.balance == Decimal("1000")

    def test_failed_balance_write_is_reported(self, user, audit_logger):
        """Transactions are saved before balances; a lost balance write shows up as drift."""
        storage = AccountsWriteFailsStorage()
        store = LedgerStore(storage, audit_logger=audit_logger)
        bank = store.add_account(user, "Bank1", "Savings", 1000).data

        storage.fail_accounts = True
        with pytest.raises(StorageError):
            store.add_transaction(user, bank.id, "debit", "Food", "UPI", 100, date(2024, 1, 10))
        storage.fail_accounts = False

        assert len(store.get_transactions(user).data) == 1
        assert balance_of(store, user, bank.id) == Decimal("1000")
        mismatches = store.verify_balances(user).data
        assert [(m.account_id, m.expected_balance) for m in mismatches] == [(bank.id, Decimal("900"))]


class AccountsWriteFailsStorage(InMemoryLedgerStorage):
    """In-memory storage whose accounts write can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_accounts = False

    def save(self, collection, data):
        if self.fail_accounts and collection == Collection.ACCOUNTS:
            raise StorageError("accounts sheet unavailable")
        super().save(collection, data)


class TestConcurrency:
    """The store lock serializes writers and keeps snapshots whole."""

    THREADS = 8
    ROUNDS = 50

    def test_parallel_add_and_delete_keep_balance(self, store, user, bank1):
        def writer():
            for _ in range(self.ROUNDS):
                add_credit(store, user, bank1, 10)
                debit = add_debit(store, user, bank1, 25)
                result = store.delete_transaction(user, debit.id)
                assert result.success, result.message

        with ThreadPoolExecutor(max_workers=self.THREADS) as pool:
            futures = [pool.submit(writer) for _ in range(self.THREADS)]
            for future in futures:
                future.result()

        assert balance_of(store, user, bank1.id) == Decimal("1000") + 10 * self.THREADS * self.ROUNDS
        assert len(store.get_transactions(user).data) == self.THREADS * self.ROUNDS
        assert_invariant(store, user)

    def test_snapshots_never_see_half_an_operation(self, store, user, bank1):
        def writer():
            for _ in range(self.ROUNDS):
                debit = add_debit(store, user, bank1, 7)
                store.update_transaction(user, debit.id, {"type": "credit"})

        def reader():
            for _ in range(self.ROUNDS):
                snapshot = store.snapshot(user).data
                for account in snapshot.accounts:
                    assert account.balance == expected_balance(account, snapshot.transactions)

        with ThreadPoolExecutor(max_workers=self.THREADS) as pool:
            futures = [pool.submit(writer) for _ in range(self.THREADS // 2)]
            futures += [pool.submit(reader) for _ in range(self.THREADS // 2)]
            for future in futures:
                future.result()

        assert balance_of(store, user, bank1.id) == Decimal("1000") + 7 * (self.THREADS // 2) * self.ROUNDS
        assert_invariant(store, user)
