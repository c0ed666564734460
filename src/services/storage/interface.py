"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the JSON file for Google Sheets or a real database later
2. Use in-memory storage for testing
3. Keep the ledger logic decoupled from storage implementation

The interface is intentionally simple - a key-value blob store with four
named collections. The ledger store loads a collection, changes it and
saves it back; nothing here knows what an account or a balance is.
"""

import copy
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from src.models.audit import AuditEvent


class Collection(str, Enum):
    """The named slots of the key-value store."""
    USERS = "users"
    ACCOUNTS = "accounts"
    TRANSACTIONS = "transactions"
    CURRENT_USER = "currentUser"


# Value a slot holds when it has never been written
EMPTY_VALUES: dict[Collection, Any] = {
    Collection.USERS: [],
    Collection.ACCOUNTS: [],
    Collection.TRANSACTIONS: [],
    Collection.CURRENT_USER: None,
}


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the ledger's key-value store.

    Values are JSON-compatible data (lists of dicts, a dict, or None).
    Any storage implementation (in-memory, JSON file, Google Sheets, ...)
    must implement `load` and `save`.
    """

    @abstractmethod
    def load(self, collection: Collection) -> Optional[Any]:
        """
        Read a collection.

        Args:
            collection: The slot to read

        Returns:
            The stored value, or None if the slot was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, collection: Collection, data: Any) -> None:
        """
        Replace a collection.

        Args:
            collection: The slot to write
            data: JSON-compatible value

        Raises:
            StorageError: If the write fails
        """
        pass

    def load_or_default(self, collection: Collection) -> Any:
        """Read a collection, falling back to its empty value."""
        data = self.load(collection)
        if data is None:
            return copy.deepcopy(EMPTY_VALUES[collection])
        return data

    def ensure_initialized(self) -> None:
        """Write the empty value into every slot that is still absent."""
        for collection, empty in EMPTY_VALUES.items():
            if collection is Collection.CURRENT_USER:
                # null is both "absent" and "logged out"
                continue
            if self.load(collection) is None:
                self.save(collection, empty)


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'account', 'transaction')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """Stored data could not be decoded."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
