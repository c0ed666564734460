"""
In-Memory Storage

Used by the tests and by the "memory" backend. Values are deep-copied on
the way in and out so callers can never mutate stored state in place,
which is what a serializing backend would give them too.
"""

import copy
from typing import Any, Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    LedgerStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Key-value store backed by a dict."""

    def __init__(self, initial: Optional[dict[Collection, Any]] = None):
        self._data: dict[Collection, Any] = {}
        for collection, value in (initial or {}).items():
            self._data[Collection(collection)] = copy.deepcopy(value)

    def load(self, collection: Collection) -> Optional[Any]:
        return copy.deepcopy(self._data.get(Collection(collection)))

    def save(self, collection: Collection, data: Any) -> None:
        self._data[Collection(collection)] = copy.deepcopy(data)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        # Reverse insertion order; timestamps can tie within one operation
        return list(reversed(self._events))[:limit]
