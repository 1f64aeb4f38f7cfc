"""
History Store - Key-value storage for applied edit records

The patch engine only talks to the narrow HistoryStore interface so a durable
backend can replace the in-memory map without touching the diff algorithms.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from models.diff import EditHistoryEntry

logger = logging.getLogger(__name__)

_entries_adapter = TypeAdapter(list[EditHistoryEntry])


class HistoryStore(Protocol):
    def put(self, entry: EditHistoryEntry) -> None:
        """Insert a new entry; raise KeyError if the id is already present"""
        ...

    def get(self, edit_id: str) -> EditHistoryEntry | None: ...

    def pop(self, edit_id: str) -> EditHistoryEntry | None:
        """Remove and return an entry atomically"""
        ...

    def values(self) -> list[EditHistoryEntry]: ...


class InMemoryHistoryStore:
    """Process-lifetime history map guarded by a lock"""

    def __init__(self):
        self._entries: dict[str, EditHistoryEntry] = {}
        self._lock = threading.Lock()

    def put(self, entry: EditHistoryEntry) -> None:
        with self._lock:
            if entry.edit_id in self._entries:
                raise KeyError(f"History entry already exists: {entry.edit_id}")
            entries = {**self._entries, entry.edit_id: entry}
            self._persist(entries)
            self._entries = entries

    def get(self, edit_id: str) -> EditHistoryEntry | None:
        with self._lock:
            return self._entries.get(edit_id)

    def pop(self, edit_id: str) -> EditHistoryEntry | None:
        with self._lock:
            if edit_id not in self._entries:
                return None
            entries = dict(self._entries)
            entry = entries.pop(edit_id)
            self._persist(entries)
            self._entries = entries
            return entry

    def values(self) -> list[EditHistoryEntry]:
        with self._lock:
            return list(self._entries.values())

    def _persist(self, entries: dict[str, EditHistoryEntry]) -> None:
        """Hook called under the lock before a mutation takes effect.

        Raising OSError here leaves the map unchanged.
        """


class JsonFileHistoryStore(InMemoryHistoryStore):
    """History map persisted to a JSON file on every mutation"""

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path).expanduser()
        for entry in self._load():
            self._entries[entry.edit_id] = entry

    def _load(self) -> list[EditHistoryEntry]:
        if not self.path.exists():
            return []
        try:
            return _entries_adapter.validate_json(self.path.read_bytes())
        except (ValidationError, OSError) as e:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, e)
            return []

    def _persist(self, entries: dict[str, EditHistoryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(_entries_adapter.dump_json(list(entries.values()), indent=2))
        tmp_path.replace(self.path)
