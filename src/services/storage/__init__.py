"""
Storage Services Package

Provides the abstract key-value interface and its implementations:
in-memory (tests), a local JSON file, and Google Sheets.
"""

from src.services.storage.interface import (
    EMPTY_VALUES,
    AuditStorageInterface,
    Collection,
    ConnectionError,
    CorruptDataError,
    LedgerStorageInterface,
    StorageError,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from src.services.storage.json_file import JsonFileLedgerStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Collection",
    "EMPTY_VALUES",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptDataError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
]
