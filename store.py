from __future__ import annotations

import logging
import os
import threading
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, NamedTuple, Optional, Set, Union

from database import SessionLocal, init_db
from entities import COLLECTIONS, Attempt, Document, Group, Line, LogEntry, Settings, Tank, WaterEntry
import persistence
from persistence import KeyValueSlot
from seed import seed_document
import views

logger = logging.getLogger(__name__)

STORAGE_KEY = os.environ.get("GUPPY_STORAGE_KEY", "guppy_journal_v1")


class Dependent(NamedTuple):
    kind: str
    field: str
    many: bool = False


# Removing an entity of the key kind removes every dependent pointing at it.
# For ``many`` references the id is pruned from the list and the dependent is
# only removed once the list runs empty.
CASCADES: Dict[str, List[Dependent]] = {
    "tanks": [
        Dependent("attempts", "tank_ids", many=True),
        Dependent("groups", "tank_id"),
        Dependent("water", "tank_id"),
        Dependent("log", "tank_id"),
    ],
    "attempts": [
        Dependent("groups", "attempt_id"),
        Dependent("log", "attempt_id"),
    ],
}


class JournalStore:
    """The single in-memory journal document and every mutation on it.

    Mutations build the next document and swap it in one assignment, then
    write the whole document to the slot. Sync routes run in a threadpool, so
    every mutation holds ``_lock`` from reading the document until the write
    has finished; it is reentrant because compound mutations call simple ones.
    """

    def __init__(self, slot, document: Optional[Document] = None):
        self.slot = slot
        self._lock = threading.RLock()
        self.document = document if document is not None else persistence.load(slot)

    def find(self, kind: str, entity_id: str) -> Optional[Any]:
        for item in getattr(self.document, kind):
            if item.id == entity_id:
                return item
        return None

    def _commit(self, **changes) -> None:
        self.document = replace(self.document, **changes)
        persistence.save(self.slot, self.document)

    # --- generic ---

    def upsert(self, kind: str, entity) -> None:
        with self._lock:
            items = getattr(self.document, kind)
            if any(x.id == entity.id for x in items):
                items = [entity if x.id == entity.id else x for x in items]
            else:
                items = [entity] + items
            self._commit(**{kind: items})

    def update(self, kind: str, entity_id: str, **changes) -> None:
        with self._lock:
            if self.find(kind, entity_id) is None:
                return
            items = [replace(x, **changes) if x.id == entity_id else x for x in getattr(self.document, kind)]
            self._commit(**{kind: items})

    def _collect(self, kind: str, entity_id: str, doomed: Dict[str, Set[str]]) -> None:
        if entity_id in doomed[kind]:
            return
        doomed[kind].add(entity_id)
        for dep in CASCADES.get(kind, []):
            for item in getattr(self.document, dep.kind):
                ref = getattr(item, dep.field)
                if dep.many:
                    if entity_id in ref and not [r for r in ref if r not in doomed[kind]]:
                        self._collect(dep.kind, item.id, doomed)
                elif ref == entity_id:
                    self._collect(dep.kind, item.id, doomed)

    def remove(self, kind: str, entity_id: str) -> None:
        with self._lock:
            if self.find(kind, entity_id) is None:
                return
            doomed: Dict[str, Set[str]] = {k: set() for k in COLLECTIONS}
            self._collect(kind, entity_id, doomed)

            changes: Dict[str, list] = {}
            for k in COLLECTIONS:
                items = [x for x in getattr(self.document, k) if x.id not in doomed[k]]
                for dep in CASCADES.get(kind, []):
                    if dep.kind == k and dep.many:
                        items = [
                            replace(x, **{dep.field: [r for r in getattr(x, dep.field) if r not in doomed[kind]]})
                            if set(getattr(x, dep.field)) & doomed[kind] else x
                            for x in items
                        ]
                changes[k] = items
            self._commit(**changes)
        removed = {k: len(v) for k, v in doomed.items() if v}
        logger.info(f"Removed {kind} {entity_id}: {removed}")

    # --- per entity ---

    def upsert_tank(self, tank: Tank) -> None: self.upsert("tanks", tank)
    def remove_tank(self, tank_id: str) -> None: self.remove("tanks", tank_id)

    def upsert_line(self, line: Line) -> None: self.upsert("lines", line)

    def remove_line(self, line_id: str) -> None:
        """Lines still used by a non-archived attempt are archived instead of removed."""
        with self._lock:
            if views.linked_attempt_count(self.document, line_id):
                self.update("lines", line_id, archived=True)
            else:
                self.remove("lines", line_id)

    def upsert_attempt(self, attempt: Attempt) -> None: self.upsert("attempts", attempt)
    def remove_attempt(self, attempt_id: str) -> None: self.remove("attempts", attempt_id)

    def end_attempt(self, attempt_id: str, end_date: Optional[str] = None) -> None:
        with self._lock:
            attempt = self.find("attempts", attempt_id)
            if attempt is None:
                return
            self.update("attempts", attempt_id, active=False,
                        end_date=end_date or attempt.end_date or date.today().isoformat())

    def archive_attempt(self, attempt_id: str) -> None:
        self.update("attempts", attempt_id, archived=True)

    def upsert_group(self, group: Group) -> None: self.upsert("groups", group)
    def remove_group(self, group_id: str) -> None: self.remove("groups", group_id)

    def upsert_water(self, entry: WaterEntry) -> None: self.upsert("water", entry)
    def remove_water(self, entry_id: str) -> None: self.remove("water", entry_id)

    def upsert_log(self, entry: LogEntry) -> None: self.upsert("log", entry)
    def remove_log(self, entry_id: str) -> None: self.remove("log", entry_id)

    def update_settings(self, settings: Settings) -> None:
        with self._lock:
            self._commit(settings=settings)

    # --- whole document ---

    def reload(self) -> None:
        with self._lock:
            self.document = persistence.load(self.slot)

    def reset(self) -> None:
        with self._lock:
            try:
                self.slot.clear()
            except Exception as e:
                logger.warning(f"Could not clear journal slot: {e}")
            self.document = seed_document()
            persistence.save(self.slot, self.document)

    def import_backup(self, data: Union[bytes, str]) -> None:
        """Replace the stored journal with a backup; raises ImportRejected for non-objects."""
        payload = persistence.import_document(data)
        with self._lock:
            persistence.save_raw(self.slot, payload)
            self.reload()


_store: Optional[JournalStore] = None
_store_lock = threading.Lock()

def get_store() -> JournalStore:
    global _store
    with _store_lock:
        if _store is None:
            init_db()
            _store = JournalStore(KeyValueSlot(SessionLocal, STORAGE_KEY))
    return _store
