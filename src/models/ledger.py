"""
Core Data Models for Personal Ledger

These models define the strict schemas for users, accounts and
transactions. They are designed to:
1. Enforce required fields at creation time
2. Provide clear validation error messages
3. Be serializable to the key-value store and back
4. Carry money as Decimal so balance arithmetic is exact

DESIGN DECISION: An account's balance must always equal its initial
balance plus the signed amounts of its transactions. The models only
describe the records; the LedgerStore is the sole component that
mutates them and keeps that invariant.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS AND CONSTANTS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. The sign of the amount is carried here."""
    CREDIT = "credit"
    DEBIT = "debit"


class ErrorKind(str, Enum):
    """Why an operation was refused."""
    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"


DEFAULT_CATEGORIES = [
    "Food",
    "Rent",
    "Travel",
    "EMI",
    "Shopping",
    "Bills",
    "Investment",
    "Entertainment",
    "Healthcare",
    "Education",
    "Utilities",
    "Other",
]

DEFAULT_ACCOUNT_TYPES = ["Savings", "Current", "Salary", "Credit Card", "Wallet"]

# Fallback labels used when a field is missing or a reference is dangling
OTHER_CATEGORY = "Other"
UNKNOWN_METHOD = "Unknown"
UNKNOWN_ACCOUNT = "Unknown"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# USERS
# =============================================================================

class SessionUser(BaseModel):
    """
    Public projection of a user.

    This is what the session pointer holds and what every ledger
    operation receives as the acting user.
    """
    id: UUID
    name: str
    email: str


class User(BaseModel):
    """
    A registered user.

    The password is never stored as given; only its bcrypt hash is kept.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password_hash: str = Field(..., min_length=1)
    created_at: dt.datetime = Field(default_factory=_utcnow)

    def to_session_user(self) -> SessionUser:
        return SessionUser(id=self.id, name=self.name, email=self.email)


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(BaseModel):
    """
    A bank account owned by exactly one user.

    `initial_balance` is fixed at creation. `balance` moves only through
    transaction operations.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    bank_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name of the bank"
    )
    account_type: str = Field(
        default="Savings",
        max_length=50,
        description="Free-text account type (Savings, Current, ...)"
    )
    balance: Decimal = Field(
        ...,
        description="Current balance; may go negative through debits"
    )
    initial_balance: Decimal = Field(
        ...,
        ge=0,
        description="Opening balance; never changes"
    )
    created_at: dt.datetime = Field(default_factory=_utcnow)


class AccountUpdate(BaseModel):
    """Patch for the display fields of an account."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    bank_name: Optional[str] = Field(default=None, max_length=200)
    account_type: Optional[str] = Field(default=None, max_length=50)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A credit or debit against one account.

    `amount` is always stored positive; `type` carries the sign.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    account_id: UUID
    type: TransactionType
    category: str = Field(default=OTHER_CATEGORY, max_length=100)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction comes from type"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: dt.datetime = Field(default_factory=_utcnow)

    @field_validator('category')
    @classmethod
    def default_blank_category(cls, v: str) -> str:
        return v or OTHER_CATEGORY

    @field_validator('payment_method')
    @classmethod
    def blank_method_is_missing(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the account balance."""
        if self.type == TransactionType.CREDIT:
            return self.amount
        return -self.amount


class TransactionUpdate(BaseModel):
    """
    Patch for a transaction.

    Unset fields are left as they are. `notes` may be set to an empty
    string to clear it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    account_id: Optional[UUID] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(default=None, max_length=100)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        # Same spelling rules as add_transaction: "Credit", " DEBIT " etc.
        if isinstance(v, str) and not isinstance(v, TransactionType):
            return v.strip().lower()
        return v


# =============================================================================
# RESULTS AND SNAPSHOTS
# =============================================================================

class OperationResult(BaseModel):
    """
    Outcome of a ledger or auth operation.

    Operations never raise for bad input; callers check `success`.
    """
    success: bool
    message: str
    error: Optional[ErrorKind] = None
    data: Optional[Any] = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=error)


class LedgerSnapshot(BaseModel):
    """A consistent copy of one user's accounts and transactions."""
    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)


class BalanceMismatch(BaseModel):
    """An account whose stored balance disagrees with its transactions."""
    account_id: UUID
    bank_name: str
    stored_balance: Decimal
    expected_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.expected_balance
