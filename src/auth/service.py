"""
Auth Service

Registration, login and the persisted "current user" session slot.

DESIGN DECISION: Passwords are hashed with bcrypt before they are
stored. The stored record never holds the password itself, and the
session slot only ever holds the public SessionUser projection.
"""

import re
from threading import Lock
from typing import Optional

import bcrypt
from pydantic import ValidationError

from src.audit import AuditLogger
from src.config import AppSettings
from src.ledger.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    LedgerError,
)
from src.models.ledger import OperationResult, SessionUser, User
from src.services.storage import (
    Collection,
    CorruptDataError,
    LedgerStorageInterface,
)


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# bcrypt only looks at the first 72 bytes and refuses anything longer
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class AuthService:
    """
    User registration and session handling on top of the key-value store.

    Emails are compared exactly as entered (after trimming), so
    "A@x.com" and "a@x.com" are two different users.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or AppSettings()
        self._lock = Lock()
        self._storage.ensure_initialized()

    def _load_users(self) -> list[User]:
        try:
            return [User.model_validate(u) for u in self._storage.load_or_default(Collection.USERS)]
        except ValidationError as e:
            raise CorruptDataError(f"Stored users are invalid: {e}")

    def _validate_registration(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: Optional[str],
    ) -> None:
        if not name:
            raise InvalidInputError("Name is required")
        if not email:
            raise InvalidInputError("Email is required")
        if not EMAIL_PATTERN.match(email):
            raise InvalidInputError("Please enter a valid email")
        if not password:
            raise InvalidInputError("Password is required")
        if len(password) < self._settings.min_password_length:
            raise InvalidInputError(
                f"Password must be at least {self._settings.min_password_length} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise InvalidInputError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if confirm_password is not None and password != confirm_password:
            raise InvalidInputError("Passwords do not match")

    def register_user(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: Optional[str] = None,
    ) -> OperationResult:
        """
        Create a user.

        `confirm_password` is checked only when given. A duplicate email
        fails without creating anything.
        """
        name = (name or "").strip()
        email = (email or "").strip()
        try:
            self._validate_registration(name, email, password or "", confirm_password)
            with self._lock:
                users = self._load_users()
                if any(u.email == email for u in users):
                    raise DuplicateEmailError()
                user = User(
                    name=name,
                    email=email,
                    password_hash=hash_password(password, self._settings.bcrypt_rounds),
                )
                users.append(user)
                self._storage.save(
                    Collection.USERS,
                    [u.model_dump(mode="json") for u in users],
                )
        except LedgerError as e:
            self._audit.log_registration_rejected(email=email, reason=str(e))
            return OperationResult.fail(e.kind, str(e))

        self._audit.log_user_registered(user_id=user.id, email=user.email)
        return OperationResult.ok("Registration successful", data=user.to_session_user())

    def login_user(self, email: str, password: str) -> OperationResult:
        """Check credentials and store the session user on success."""
        email = (email or "").strip()
        try:
            user = next((u for u in self._load_users() if u.email == email), None)
            if (
                user is None
                or not password
                or len(password.encode("utf-8")) > MAX_PASSWORD_BYTES
                or not verify_password(password, user.password_hash)
            ):
                raise InvalidCredentialsError()
        except LedgerError as e:
            self._audit.log_login_failed(email=email)
            return OperationResult.fail(e.kind, str(e))

        session_user = user.to_session_user()
        self._storage.save(Collection.CURRENT_USER, session_user.model_dump(mode="json"))
        self._audit.log_user_logged_in(user_id=user.id)
        return OperationResult.ok("Login successful", data=session_user)

    def get_current_user(self) -> Optional[SessionUser]:
        stored = self._storage.load(Collection.CURRENT_USER)
        if stored is None:
            return None
        try:
            return SessionUser.model_validate(stored)
        except ValidationError as e:
            raise CorruptDataError(f"Stored session is invalid: {e}")

    def logout_user(self) -> OperationResult:
        current = self.get_current_user()
        self._storage.save(Collection.CURRENT_USER, None)
        self._audit.log_user_logged_out(user_id=current.id if current else None)
        return OperationResult.ok("Logged out")
