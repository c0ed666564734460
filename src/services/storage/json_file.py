"""
JSON File Storage

Keeps all collections in one JSON document on disk:

    {"users": [...], "accounts": [...], "transactions": [...], "currentUser": {...}}

Writes go through a temporary file that is then moved over the target,
so a crash mid-write never leaves a half-written document behind.
"""

import json
from pathlib import Path
from threading import Lock
from typing import Any, Optional, Union

from src.services.storage.interface import (
    Collection,
    CorruptDataError,
    LedgerStorageInterface,
    StorageError,
)


class JsonFileLedgerStorage(LedgerStorageInterface):
    """File-backed key-value store for a single local user base."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            raise CorruptDataError(f"Ledger file is not valid JSON: {self._path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read ledger file {self._path}: {e}")
        if not isinstance(data, dict):
            raise CorruptDataError(f"Ledger file must hold a JSON object: {self._path}")
        return data

    def _write_document(self, document: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False, indent=2)
            temp_path.replace(self._path)
        except OSError as e:
            raise StorageError(f"Failed to write ledger file {self._path}: {e}")

    def load(self, collection: Collection) -> Optional[Any]:
        with self._lock:
            return self._read_document().get(Collection(collection).value)

    def save(self, collection: Collection, data: Any) -> None:
        with self._lock:
            document = self._read_document()
            document[Collection(collection).value] = data
            self._write_document(document)
