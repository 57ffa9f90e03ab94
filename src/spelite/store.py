# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Triplet store: (subject, predicate, object[, language]) records.

Primary storage is a SQLite file (or :memory:). Lookups never hit SQLite:
three in-memory indexes are maintained alongside the table and rebuilt
from disk when the store is opened:

- subject            -> rows
- predicate          -> rows
- (predicate, object) -> rows   (dominant access pattern for structured search)

Booleans are stored as 0/1. Readers convert BOOLEAN_PREDICATES back.
"""
import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

logger = logging.getLogger(__name__)

ObjectValue = Union[str, int, float, bool]

BOOLEAN_PREDICATES = frozenset({
    "dnd:ritual",
    "dnd:concentration",
    "dnd:has_attack_roll",
    "dnd:has_save",
    "dnd:higher_levels",
})

_SCHEMA = """
CREATE TABLE IF NOT EXISTS triplets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subject TEXT NOT NULL,
    predicate TEXT NOT NULL,
    object,
    language TEXT
);
CREATE INDEX IF NOT EXISTS idx_triplets_subject ON triplets(subject);
CREATE INDEX IF NOT EXISTS idx_triplets_po ON triplets(predicate, object);
CREATE INDEX IF NOT EXISTS idx_triplets_language ON triplets(language);

CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


@dataclass(frozen=True)
class Triplet:
    subject: str
    predicate: str
    object: ObjectValue
    language: Optional[str] = None


def to_storage(value: ObjectValue) -> Union[str, int, float]:
    """Booleans become 0/1, everything else is stored as-is."""
    if isinstance(value, bool):
        return int(value)
    if not isinstance(value, (str, int, float)):
        raise TypeError(f"Unsupported triplet object type: {type(value).__name__}")
    return value


def from_storage(predicate: str, value: ObjectValue) -> ObjectValue:
    if predicate in BOOLEAN_PREDICATES and not isinstance(value, str):
        return bool(value)
    return value


class TripletStore:
    def __init__(self, path: Union[str, Path] = ":memory:"):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.executescript(_SCHEMA)
        self._reset_indexes()
        self._load_indexes()

    # ── Indexes ──────────────────────────────────────────

    def _reset_indexes(self):
        self._rows: list[Triplet] = []
        self._by_subject: dict[str, list[int]] = {}
        self._by_predicate: dict[str, list[int]] = {}
        self._by_predicate_object: dict[tuple[str, ObjectValue], list[int]] = {}

    def _index(self, triplet: Triplet):
        pos = len(self._rows)
        self._rows.append(triplet)
        self._by_subject.setdefault(triplet.subject, []).append(pos)
        self._by_predicate.setdefault(triplet.predicate, []).append(pos)
        key = (triplet.predicate, triplet.object)
        self._by_predicate_object.setdefault(key, []).append(pos)

    def _load_indexes(self):
        with self._lock:
            rows = self._conn.execute(
                "SELECT subject, predicate, object, language FROM triplets ORDER BY id"
            ).fetchall()
            for subject, predicate, obj, language in rows:
                self._index(Triplet(subject, predicate, obj, language))
        if rows:
            logger.info("Loaded %d triplets from %s", len(rows), self.path)

    def _collect(self, positions: Optional[list[int]]) -> list[Triplet]:
        if not positions:
            return []
        return [self._rows[p] for p in positions]

    # ── Writes ───────────────────────────────────────────

    def bulk_load(self, triplets: Iterable[Triplet]) -> int:
        """Insert all triplets in a single transaction."""
        normalized = [
            Triplet(t.subject, t.predicate, to_storage(t.object), t.language)
            for t in triplets
        ]
        with self._lock:
            with self._conn:
                self._conn.executemany(
                    "INSERT INTO triplets (subject, predicate, object, language) "
                    "VALUES (?, ?, ?, ?)",
                    [(t.subject, t.predicate, t.object, t.language) for t in normalized],
                )
            for t in normalized:
                self._index(t)
        return len(normalized)

    def clear(self):
        with self._lock:
            with self._conn:
                self._conn.execute("DELETE FROM triplets")
            self._reset_indexes()

    # ── Reads ────────────────────────────────────────────

    def find_by_subject(self, subject: str) -> list[Triplet]:
        with self._lock:
            return self._collect(self._by_subject.get(subject))

    def find_by_predicate(self, predicate: str) -> list[Triplet]:
        with self._lock:
            return self._collect(self._by_predicate.get(predicate))

    def find_by_predicate_object(self, predicate: str, obj: ObjectValue) -> list[Triplet]:
        key = (predicate, to_storage(obj))
        with self._lock:
            return self._collect(self._by_predicate_object.get(key))

    def all_triplets(self) -> list[Triplet]:
        with self._lock:
            return list(self._rows)

    def count_triplets(self) -> int:
        with self._lock:
            return len(self._rows)

    # ── Meta slot (data version marker) ──────────────────

    def get_meta(self, key: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM meta WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set_meta(self, key: str, value: str):
        with self._lock:
            with self._conn:
                self._conn.execute(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    (key, value),
                )

    def delete_meta(self, key: str):
        with self._lock:
            with self._conn:
                self._conn.execute("DELETE FROM meta WHERE key = ?", (key,))

    # ── Lifecycle ────────────────────────────────────────

    def close(self):
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "TripletStore":
        return self

    def __exit__(self, *exc):
        self.close()
