"""
Ledger Store

DESIGN DECISION: This is the ONLY component that mutates accounts and
transactions. Every mutation keeps the balance invariant:

    account.balance == account.initial_balance
                       + sum(signed amount of the account's transactions)

Balances are maintained incrementally: adding a transaction applies its
signed amount, deleting reverses it, and editing first reverses the old
effect on the old account and then applies the new effect on the new
account. A naive "apply the delta" is wrong as soon as the type flips
between credit and debit or the transaction moves to another account.

GUARANTEES:
- Every operation needs an acting user; without one it fails
- Validation happens before anything is written, so a refused
  operation writes nothing
- Refusals come back as an OperationResult instead of raising
- Collections are read-modify-written under one lock, and snapshots
  take the same lock, so readers see whole operations only

WRITE ORDER: a mutation saves the transactions collection first and the
accounts collection second. Storage errors are not turned into results;
they propagate to the caller. If the accounts write fails after the
transactions write succeeded, the stored balances lag behind their
transactions until repaired, and verify_balances reports every account
that is off.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from threading import RLock
from typing import Any, Callable, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError

from src.analytics.engine import expected_balance, filter_by_date_range
from src.audit import AuditLogger
from src.ledger.errors import (
    InvalidInputError,
    LedgerError,
    NotAuthenticatedError,
    NotFoundError,
)
from src.models.ledger import (
    DEFAULT_ACCOUNT_TYPES,
    OTHER_CATEGORY,
    Account,
    AccountUpdate,
    BalanceMismatch,
    LedgerSnapshot,
    OperationResult,
    SessionUser,
    Transaction,
    TransactionType,
    TransactionUpdate,
)
from src.services.storage import (
    Collection,
    CorruptDataError,
    LedgerStorageInterface,
)


Record = TypeVar("Record", Account, Transaction)
Patch = TypeVar("Patch", AccountUpdate, TransactionUpdate)


# =============================================================================
# INPUT PARSING
# =============================================================================

def parse_amount(value: Any, field: str = "amount") -> Decimal:
    """Parse a money value from a number or numeric string."""
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"Valid {field} is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidInputError(f"Valid {field} is required")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInputError(f"Valid {field} is required")
    if not amount.is_finite():
        raise InvalidInputError(f"Valid {field} is required")
    return amount


def parse_date(value: Any) -> date:
    """Accept a date, a datetime or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidInputError(f"Invalid date: {value}")
    raise InvalidInputError("Date is required")


def parse_transaction_type(value: Any) -> TransactionType:
    if isinstance(value, str):
        value = value.strip().lower()
    try:
        return TransactionType(value)
    except ValueError:
        raise InvalidInputError("Transaction type must be 'credit' or 'debit'")


def parse_id(value: Any, label: str) -> UUID:
    """An id that cannot even be parsed cannot exist either."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(f"{label} not found")


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "input"
    return f"Invalid {field}: {first['msg']}"


# =============================================================================
# STORE
# =============================================================================

class LedgerStore:
    """
    Accounts and transactions of every user, scoped per call to the
    acting user.

    All public methods take the acting user as their first argument and
    return an OperationResult. Successful results carry the affected
    record (or list of records) in `data`.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        # Collections hold every user's records in one blob, so writes
        # for different users still contend for the same value.
        self._lock = RLock()
        self._storage.ensure_initialized()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        user: Optional[SessionUser],
        action: Callable[[SessionUser], OperationResult],
    ) -> OperationResult:
        """Authenticate, serialize and convert refusals into results."""
        try:
            if user is None:
                raise NotAuthenticatedError()
            with self._lock:
                return action(user)
        except LedgerError as e:
            self._audit.log_operation_rejected(
                operation=operation,
                error_code=e.kind.value,
                message=str(e),
                user_id=user.id if user else None,
            )
            return OperationResult.fail(e.kind, str(e))

    def _load_records(self, collection: Collection, model: type[Record]) -> list[Record]:
        records = self._storage.load_or_default(collection)
        try:
            return [model.model_validate(record) for record in records]
        except ValidationError as e:
            raise CorruptDataError(f"Stored {collection.value} are invalid: {e}")

    def _save_records(self, collection: Collection, records: list[BaseModel]) -> None:
        self._storage.save(
            collection,
            [record.model_dump(mode="json") for record in records],
        )

    def _load_accounts(self) -> list[Account]:
        return self._load_records(Collection.ACCOUNTS, Account)

    def _load_transactions(self) -> list[Transaction]:
        return self._load_records(Collection.TRANSACTIONS, Transaction)

    @staticmethod
    def _owned(records: list[Record], acting: SessionUser) -> list[Record]:
        return [r for r in records if r.user_id == acting.id]

    @staticmethod
    def _find_owned(
        records: list[Record],
        acting: SessionUser,
        record_id: UUID,
        label: str,
    ) -> Record:
        for record in records:
            if record.id == record_id and record.user_id == acting.id:
                return record
        raise NotFoundError(f"{label} not found")

    @staticmethod
    def _find_account(
        accounts: list[Account],
        acting: SessionUser,
        account_id: UUID,
    ) -> Optional[Account]:
        """Like _find_owned, but a deleted account is not an error here."""
        for account in accounts:
            if account.id == account_id and account.user_id == acting.id:
                return account
        return None

    @staticmethod
    def _coerce_patch(patch: Any, model: type[Patch]) -> Patch:
        if isinstance(patch, model):
            return patch
        if patch is None:
            return model()
        if isinstance(patch, dict):
            try:
                return model.model_validate(patch)
            except ValidationError as e:
                raise InvalidInputError(_validation_message(e))
        raise InvalidInputError("Updates must be given as a mapping")

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def add_account(
        self,
        user: Optional[SessionUser],
        bank_name: str,
        account_type: Optional[str],
        initial_balance: Any,
    ) -> OperationResult:
        """Create an account whose balance starts at the initial balance."""
        return self._run(
            "add_account",
            user,
            lambda acting: self._add_account(acting, bank_name, account_type, initial_balance),
        )

    def _add_account(
        self,
        acting: SessionUser,
        bank_name: str,
        account_type: Optional[str],
        initial_balance: Any,
    ) -> OperationResult:
        name = _clean_text(bank_name)
        if not name:
            raise InvalidInputError("Bank name is required")
        balance = parse_amount(initial_balance, "balance")
        if balance < 0:
            raise InvalidInputError("Balance cannot be negative")

        try:
            account = Account(
                user_id=acting.id,
                bank_name=name,
                account_type=_clean_text(account_type) or DEFAULT_ACCOUNT_TYPES[0],
                balance=balance,
                initial_balance=balance,
            )
        except ValidationError as e:
            raise InvalidInputError(_validation_message(e))

        accounts = self._load_accounts()
        accounts.append(account)
        self._save_records(Collection.ACCOUNTS, accounts)

        self._audit.log_account_created(
            account_id=account.id,
            user_id=acting.id,
            bank_name=account.bank_name,
            initial_balance=account.initial_balance,
        )
        return OperationResult.ok("Account added successfully", data=account)

    def update_account(
        self,
        user: Optional[SessionUser],
        account_id: Any,
        patch: Union[AccountUpdate, dict, None],
    ) -> OperationResult:
        """
        Change the bank name and/or account type.

        Balances cannot be patched; a blank value leaves the field as is.
        """
        return self._run(
            "update_account",
            user,
            lambda acting: self._update_account(acting, account_id, patch),
        )

    def _update_account(
        self,
        acting: SessionUser,
        account_id: Any,
        patch: Union[AccountUpdate, dict, None],
    ) -> OperationResult:
        update = self._coerce_patch(patch, AccountUpdate)
        accounts = self._load_accounts()
        account = self._find_owned(accounts, acting, parse_id(account_id, "Account"), "Account")

        changes: dict[str, list[str]] = {}
        if update.bank_name and update.bank_name != account.bank_name:
            changes["bank_name"] = [account.bank_name, update.bank_name]
            account.bank_name = update.bank_name
        if update.account_type and update.account_type != account.account_type:
            changes["account_type"] = [account.account_type, update.account_type]
            account.account_type = update.account_type

        if changes:
            self._save_records(Collection.ACCOUNTS, accounts)
        self._audit.log_account_updated(
            account_id=account.id,
            user_id=acting.id,
            changes=changes,
        )
        return OperationResult.ok("Account updated successfully", data=account)

    def delete_account(
        self,
        user: Optional[SessionUser],
        account_id: Any,
    ) -> OperationResult:
        """
        Remove an account.

        Transactions that reference it are kept as they are; they show up
        with an "Unknown" account and still count in analytics.
        """
        return self._run(
            "delete_account",
            user,
            lambda acting: self._delete_account(acting, account_id),
        )

    def _delete_account(self, acting: SessionUser, account_id: Any) -> OperationResult:
        accounts = self._load_accounts()
        account = self._find_owned(accounts, acting, parse_id(account_id, "Account"), "Account")
        orphaned = sum(1 for t in self._load_transactions() if t.account_id == account.id)

        self._save_records(
            Collection.ACCOUNTS,
            [a for a in accounts if a.id != account.id],
        )

        self._audit.log_account_deleted(
            account_id=account.id,
            user_id=acting.id,
            orphaned_transactions=orphaned,
        )
        return OperationResult.ok("Account deleted successfully", data=account)

    def get_accounts(self, user: Optional[SessionUser]) -> OperationResult:
        """The acting user's accounts, in no guaranteed order."""
        return self._run(
            "get_accounts",
            user,
            lambda acting: OperationResult.ok(
                "Accounts loaded",
                data=self._owned(self._load_accounts(), acting),
            ),
        )

    def get_account(self, user: Optional[SessionUser], account_id: Any) -> OperationResult:
        return self._run(
            "get_account",
            user,
            lambda acting: OperationResult.ok(
                "Account loaded",
                data=self._find_owned(
                    self._load_accounts(), acting, parse_id(account_id, "Account"), "Account"
                ),
            ),
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def add_transaction(
        self,
        user: Optional[SessionUser],
        account_id: Any,
        transaction_type: Any,
        category: Optional[str],
        payment_method: Optional[str],
        amount: Any,
        transaction_date: Any,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Record a transaction and apply its signed amount to the account."""
        return self._run(
            "add_transaction",
            user,
            lambda acting: self._add_transaction(
                acting,
                account_id,
                transaction_type,
                category,
                payment_method,
                amount,
                transaction_date,
                notes,
            ),
        )

    def _add_transaction(
        self,
        acting: SessionUser,
        account_id: Any,
        transaction_type: Any,
        category: Optional[str],
        payment_method: Optional[str],
        amount: Any,
        transaction_date: Any,
        notes: Optional[str],
    ) -> OperationResult:
        value = parse_amount(amount)
        if value <= 0:
            raise InvalidInputError("Amount must be greater than 0")
        day = parse_date(transaction_date)
        kind = parse_transaction_type(transaction_type)

        accounts = self._load_accounts()
        account = self._find_owned(accounts, acting, parse_id(account_id, "Account"), "Account")

        try:
            transaction = Transaction(
                user_id=acting.id,
                account_id=account.id,
                type=kind,
                category=_clean_text(category) or OTHER_CATEGORY,
                payment_method=_clean_text(payment_method) or None,
                amount=value,
                date=day,
                notes=_clean_text(notes) or None,
            )
        except ValidationError as e:
            raise InvalidInputError(_validation_message(e))

        transactions = self._load_transactions()
        transactions.append(transaction)
        account.balance += transaction.signed_amount

        # Transactions, then balances (see WRITE ORDER)
        self._save_records(Collection.TRANSACTIONS, transactions)
        self._save_records(Collection.ACCOUNTS, accounts)

        self._audit.log_transaction_created(
            transaction_id=transaction.id,
            user_id=acting.id,
            account_id=account.id,
            signed_amount=transaction.signed_amount,
            new_balance=account.balance,
        )
        return OperationResult.ok("Transaction added successfully", data=transaction)

    def update_transaction(
        self,
        user: Optional[SessionUser],
        transaction_id: Any,
        patch: Union[TransactionUpdate, dict, None],
    ) -> OperationResult:
        """
        Edit a transaction.

        Blank values leave a field unchanged, except `notes`, which an
        empty string clears. Changing `account_id` moves the transaction
        (and its effect on balances) to another owned account.
        """
        return self._run(
            "update_transaction",
            user,
            lambda acting: self._update_transaction(acting, transaction_id, patch),
        )

    def _update_transaction(
        self,
        acting: SessionUser,
        transaction_id: Any,
        patch: Union[TransactionUpdate, dict, None],
    ) -> OperationResult:
        update = self._coerce_patch(patch, TransactionUpdate)
        transactions = self._load_transactions()
        current = self._find_owned(
            transactions, acting, parse_id(transaction_id, "Transaction"), "Transaction"
        )
        accounts = self._load_accounts()

        changes: dict[str, Any] = {}
        for name, value in update.model_dump(exclude_unset=True).items():
            if name == "notes":
                value = value or None
            elif value is None or value == "":
                continue
            if name == "amount" and value <= 0:
                raise InvalidInputError("Amount must be greater than 0")
            if value != getattr(current, name):
                changes[name] = value

        if "account_id" in changes:
            self._find_owned(accounts, acting, changes["account_id"], "Account")

        try:
            updated = Transaction.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidInputError(_validation_message(e))

        # Everything is validated; from here on we only write
        old_account = self._find_account(accounts, acting, current.account_id)
        new_account = self._find_account(accounts, acting, updated.account_id)
        if old_account is not None:
            old_account.balance -= current.signed_amount
        if new_account is not None:
            new_account.balance += updated.signed_amount

        self._save_records(
            Collection.TRANSACTIONS,
            [updated if t.id == updated.id else t for t in transactions],
        )
        if old_account is not None or new_account is not None:
            self._save_records(Collection.ACCOUNTS, accounts)

        self._audit.log_transaction_updated(
            transaction_id=updated.id,
            user_id=acting.id,
            changes={
                name: [str(getattr(current, name)), str(value)]
                for name, value in changes.items()
            },
            balances={
                str(a.id): str(a.balance)
                for a in (old_account, new_account)
                if a is not None
            },
        )
        return OperationResult.ok("Transaction updated successfully", data=updated)

    def delete_transaction(
        self,
        user: Optional[SessionUser],
        transaction_id: Any,
    ) -> OperationResult:
        """Reverse the transaction's effect on its account, then remove it."""
        return self._run(
            "delete_transaction",
            user,
            lambda acting: self._delete_transaction(acting, transaction_id),
        )

    def _delete_transaction(self, acting: SessionUser, transaction_id: Any) -> OperationResult:
        transactions = self._load_transactions()
        current = self._find_owned(
            transactions, acting, parse_id(transaction_id, "Transaction"), "Transaction"
        )
        accounts = self._load_accounts()
        account = self._find_account(accounts, acting, current.account_id)
        if account is not None:
            account.balance -= current.signed_amount

        self._save_records(
            Collection.TRANSACTIONS,
            [t for t in transactions if t.id != current.id],
        )
        if account is not None:
            self._save_records(Collection.ACCOUNTS, accounts)

        self._audit.log_transaction_deleted(
            transaction_id=current.id,
            user_id=acting.id,
            reversed_amount=-current.signed_amount,
        )
        return OperationResult.ok("Transaction deleted successfully", data=current)

    def get_transactions(self, user: Optional[SessionUser]) -> OperationResult:
        """The acting user's transactions, in no guaranteed order."""
        return self._run(
            "get_transactions",
            user,
            lambda acting: OperationResult.ok(
                "Transactions loaded",
                data=self._owned(self._load_transactions(), acting),
            ),
        )

    def get_transaction(self, user: Optional[SessionUser], transaction_id: Any) -> OperationResult:
        return self._run(
            "get_transaction",
            user,
            lambda acting: OperationResult.ok(
                "Transaction loaded",
                data=self._find_owned(
                    self._load_transactions(),
                    acting,
                    parse_id(transaction_id, "Transaction"),
                    "Transaction",
                ),
            ),
        )

    def get_transactions_by_date_range(
        self,
        user: Optional[SessionUser],
        start: Any,
        end: Any,
    ) -> OperationResult:
        """Transactions dated within [start, end], inclusive."""
        return self._run(
            "get_transactions_by_date_range",
            user,
            lambda acting: self._get_transactions_by_date_range(acting, start, end),
        )

    def _get_transactions_by_date_range(
        self,
        acting: SessionUser,
        start: Any,
        end: Any,
    ) -> OperationResult:
        start_day = parse_date(start)
        end_day = parse_date(end)
        if start_day > end_day:
            raise InvalidInputError("Start date must not be after end date")
        owned = self._owned(self._load_transactions(), acting)
        return OperationResult.ok(
            "Transactions loaded",
            data=filter_by_date_range(owned, start_day, end_day),
        )

    # -------------------------------------------------------------------------
    # Snapshots and integrity
    # -------------------------------------------------------------------------

    def snapshot(self, user: Optional[SessionUser]) -> OperationResult:
        """Accounts and transactions read together under the store lock."""
        return self._run(
            "snapshot",
            user,
            lambda acting: OperationResult.ok("Snapshot taken", data=self._snapshot(acting)),
        )

    def _snapshot(self, acting: SessionUser) -> LedgerSnapshot:
        return LedgerSnapshot(
            accounts=self._owned(self._load_accounts(), acting),
            transactions=self._owned(self._load_transactions(), acting),
        )

    def verify_balances(self, user: Optional[SessionUser]) -> OperationResult:
        """List every account whose balance disagrees with its transactions."""
        return self._run(
            "verify_balances",
            user,
            lambda acting: self._verify_balances(acting),
        )

    def _verify_balances(self, acting: SessionUser) -> OperationResult:
        snapshot = self._snapshot(acting)
        mismatches = []
        for account in snapshot.accounts:
            expected = expected_balance(account, snapshot.transactions)
            if account.balance != expected:
                mismatches.append(BalanceMismatch(
                    account_id=account.id,
                    bank_name=account.bank_name,
                    stored_balance=account.balance,
                    expected_balance=expected,
                ))
                self._audit.log_balance_mismatch(
                    account_id=account.id,
                    user_id=acting.id,
                    stored=account.balance,
                    expected=expected,
                )

        if mismatches:
            message = f"{len(mismatches)} account(s) out of balance"
        else:
            message = "All balances are consistent"
        return OperationResult.ok(message, data=mismatches)
