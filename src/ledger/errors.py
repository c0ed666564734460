"""
Ledger Exceptions

Raised inside the ledger and auth services and converted into a failed
OperationResult at the public method boundary. Callers of the services
never see these; they check `result.success` and `result.error`.
"""

from src.models.ledger import ErrorKind


class LedgerError(Exception):
    """Base exception for refused ledger operations."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    default_message = "Invalid input"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


class NotAuthenticatedError(LedgerError):
    """No acting user."""
    kind = ErrorKind.NOT_AUTHENTICATED
    default_message = "User not logged in"


class InvalidInputError(LedgerError):
    """A field is missing, malformed or out of range."""
    kind = ErrorKind.INVALID_INPUT
    default_message = "Invalid input"


class NotFoundError(LedgerError):
    """Referenced record is absent or belongs to another user."""
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class DuplicateEmailError(LedgerError):
    """Email is already registered."""
    kind = ErrorKind.DUPLICATE_EMAIL
    default_message = "Email already registered"


class InvalidCredentialsError(LedgerError):
    """Login failed."""
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"
