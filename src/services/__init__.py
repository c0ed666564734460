"""Services package."""

from src.services.storage import (
    EMPTY_VALUES,
    AuditStorageInterface,
    Collection,
    ConnectionError,
    CorruptDataError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "Collection",
    "ConnectionError",
    "CorruptDataError",
    "EMPTY_VALUES",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
    "LedgerStorageInterface",
    "StorageError",
]
