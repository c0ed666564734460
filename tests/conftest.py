"""
Shared fixtures.

Everything runs against the in-memory backends; no test touches the
file system outside tmp_path or talks to Google.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from src.audit import AuditLogger
from src.auth import AuthService
from src.config import AppSettings
from src.ledger import LedgerStore
from src.models.ledger import SessionUser, Transaction, TransactionType
from src.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


@pytest.fixture
def ledger_storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def store(ledger_storage, audit_logger):
    return LedgerStore(ledger_storage, audit_logger=audit_logger)


@pytest.fixture
def app_settings():
    # Lowest bcrypt cost keeps the auth tests fast
    return AppSettings(bcrypt_rounds=4)


@pytest.fixture
def auth(ledger_storage, audit_logger, app_settings):
    return AuthService(ledger_storage, audit_logger=audit_logger, settings=app_settings)


@pytest.fixture
def user():
    return SessionUser(id=uuid4(), name="Asha", email="a@x.com")


@pytest.fixture
def other_user():
    return SessionUser(id=uuid4(), name="Ravi", email="r@x.com")


@pytest.fixture
def bank1(store, user):
    """An account "Bank1" opened with 1000."""
    result = store.add_account(user, "Bank1", "Savings", 1000)
    assert result.success
    return result.data


@pytest.fixture
def make_transaction():
    """Build Transaction records directly, for the pure analytics tests."""
    user_id = uuid4()
    default_account = uuid4()

    def _make(
        amount,
        type=TransactionType.DEBIT,
        category="Other",
        payment_method=None,
        day=date(2024, 1, 15),
        account_id: UUID = default_account,
    ) -> Transaction:
        return Transaction(
            user_id=user_id,
            account_id=account_id,
            type=type,
            category=category,
            payment_method=payment_method,
            amount=Decimal(str(amount)),
            date=day,
        )

    return _make
