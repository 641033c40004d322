"""Durable key/value summary tables shared by the extractor and the analyzer.

Each table lives in its own directory holding a single SQLite database file.
Values are stored as the pydantic JSON encoding of their record type; reads go
through an in-memory cache that is filled lazily on lookup. Keys found absent
are remembered too, until an insert through the same store supplies them.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar

from pydantic import TypeAdapter, ValidationError

from taurus.exceptions import CorruptRecordError, StoreUnavailableError
from taurus.schema import CallEdge, MarkedItem

logger = logging.getLogger(__name__)

V = TypeVar("V")

DB_FILE_NAME = "db"
MARKING_TABLE = "marking"
CALLEDGE_TABLE = "calledge"

_CREATE_TABLE_SQL = (
    "CREATE TABLE IF NOT EXISTS data ("
    " key TEXT NOT NULL PRIMARY KEY,"
    " value BLOB NOT NULL"
    ") WITHOUT ROWID"
)


def without_type_params(name: str) -> str:
    """Strip the `<...>` instantiation suffix from an identifier."""
    index = name.find("<")
    if index < 0:
        return name
    return name[:index]


class PersistentSummaryStore(Generic[V]):
    def __init__(self, path: Path, value_type: Any):
        self.path = path
        self.table = path.name
        self._adapter: TypeAdapter[V] = TypeAdapter(value_type)
        self._cache: dict[str, V] = {}
        self._misses: set[str] = set()
        try:
            path.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(path / DB_FILE_NAME)
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailableError(path, str(exc)) from exc
        try:
            self._conn.execute(_CREATE_TABLE_SQL)
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.close()
            raise StoreUnavailableError(path, str(exc)) from exc

    def insert(self, key: str, value: V) -> V | None:
        self._write([(key, value)])
        previous = self._cache.get(key)
        self._cache[key] = value
        self._misses.discard(key)
        return previous

    def insert_many(self, items: Iterable[tuple[str, V]]) -> int:
        """Persist a batch of records in one transaction."""
        rows = list(items)
        self._write(rows)
        for key, value in rows:
            self._cache[key] = value
            self._misses.discard(key)
        return len(rows)

    def get(self, key: str) -> V | None:
        if key in self._cache:
            return self._cache[key]
        if key in self._misses:
            return None
        try:
            row = self._conn.execute(
                "SELECT value FROM data WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(self.path, str(exc)) from exc
        if row is None:
            # Most graph nodes carry no marking; remember that.
            self._misses.add(key)
            return None
        value = self._decode(key, row[0])
        self._cache[key] = value
        return value

    def items(self) -> Iterator[tuple[str, V]]:
        try:
            cursor = self._conn.execute("SELECT key, value FROM data")
            for key, raw in cursor:
                yield str(key), self._decode(str(key), raw)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(self.path, str(exc)) from exc

    def for_each(self, visitor: Callable[[str, V], None]) -> None:
        for key, value in self.items():
            visitor(key, value)

    def len(self) -> int:
        try:
            row = self._conn.execute("SELECT COUNT(*) FROM data").fetchone()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(self.path, str(exc)) from exc
        return int(row[0])

    def __len__(self) -> int:
        return self.len()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> PersistentSummaryStore[V]:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _write(self, rows: list[tuple[str, V]]) -> None:
        payload = [(key, self._adapter.dump_json(value)) for key, value in rows]
        try:
            with self._conn:
                self._conn.executemany(
                    "INSERT OR REPLACE INTO data(key, value) VALUES (?, ?)",
                    payload,
                )
        except sqlite3.Error as exc:
            raise StoreUnavailableError(self.path, str(exc)) from exc
        logger.debug("persisted %d record(s) into %s", len(payload), self.table)

    def _decode(self, key: str, raw: object) -> V:
        if not isinstance(raw, (bytes, str)):
            raise CorruptRecordError(self.table, key, f"unexpected {type(raw).__name__} value")
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            raise CorruptRecordError(self.table, key, str(exc)) from exc


def open_marking_store(depstore: Path) -> PersistentSummaryStore[MarkedItem]:
    return PersistentSummaryStore(depstore / MARKING_TABLE, MarkedItem)


def open_calledge_store(depstore: Path) -> PersistentSummaryStore[list[CallEdge]]:
    return PersistentSummaryStore(depstore / CALLEDGE_TABLE, list[CallEdge])
