"""Ledger package: accounts, transactions and the balance invariant."""

from src.ledger.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    LedgerError,
    NotAuthenticatedError,
    NotFoundError,
)
from src.ledger.store import LedgerStore, parse_amount, parse_date

__all__ = [
    "DuplicateEmailError",
    "InvalidCredentialsError",
    "InvalidInputError",
    "LedgerError",
    "LedgerStore",
    "NotAuthenticatedError",
    "NotFoundError",
    "parse_amount",
    "parse_date",
]
