"""Auth package: registration, login and the persisted session."""

from src.auth.service import AuthService, hash_password, verify_password

__all__ = ["AuthService", "hash_password", "verify_password"]
