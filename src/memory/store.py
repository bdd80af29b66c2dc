"""Persistent storage for memories: abstract repository plus a SQLite unit of work."""

import json
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import fields
from pathlib import Path
from typing import Callable, TypeVar

import structlog

from db import transaction

from .models import EpisodicMemory, ProceduralMemory, SemanticMemory

logger = structlog.get_logger()

M = TypeVar("M", SemanticMemory, EpisodicMemory, ProceduralMemory)

_TABLES: dict[type, str] = {
    SemanticMemory: "semantic_memories",
    EpisodicMemory: "episodic_memories",
    ProceduralMemory: "procedural_memories",
}

# Columns stored as JSON arrays
_JSON_COLUMNS = {"source_entry_ids"}


class MemoryRepository(ABC):
    """Durable entity store seen by the memory engine.

    Mutations (insert, delete, in-place edits of fetched rows) are pending
    until save(), which commits them all atomically.
    """

    @abstractmethod
    def fetch_all(self, model: type[M], predicate: Callable[[M], bool] | None = None) -> list[M]:
        ...

    @abstractmethod
    def insert(self, obj) -> None:
        ...

    @abstractmethod
    def delete(self, obj) -> None:
        ...

    @abstractmethod
    def save(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    @abstractmethod
    def clear(self, model: type) -> int:
        """Bulk-delete every row of a memory type immediately. Returns count deleted."""
        ...

    def get(self, model: type[M], memory_id: str) -> M | None:
        matches = self.fetch_all(model, lambda m: m.id == memory_id)
        return matches[0] if matches else None


class SQLiteMemoryRepository(MemoryRepository):
    """SQLite-backed repository with an identity map per unit of work."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._loaded: dict[tuple[type, str], object] = {}
        self._new: dict[tuple[type, str], object] = {}
        self._deleted: dict[tuple[type, str], object] = {}
        self._init_db()

    def _init_db(self):
        with transaction(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS semantic_memories (
                    id TEXT PRIMARY KEY,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    source_entry_ids TEXT NOT NULL DEFAULT '[]',
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS episodic_memories (
                    id TEXT PRIMARY KEY,
                    event TEXT NOT NULL,
                    date TEXT NOT NULL,
                    source_entry_id TEXT NOT NULL,
                    emotion TEXT,
                    context TEXT,
                    created_at INTEGER NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS procedural_memories (
                    id TEXT PRIMARY KEY,
                    pattern TEXT NOT NULL,
                    preference TEXT NOT NULL,
                    "trigger" TEXT,
                    frequency INTEGER NOT NULL DEFAULT 1,
                    source_entry_ids TEXT NOT NULL DEFAULT '[]',
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_semantic_key ON semantic_memories(key)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_episodic_date ON episodic_memories(date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_procedural_pattern ON procedural_memories(pattern)"
            )

    @staticmethod
    def _table(model: type) -> str:
        try:
            return _TABLES[model]
        except KeyError:
            raise TypeError(f"Not a memory model: {model.__name__}") from None

    @staticmethod
    def _key(obj) -> tuple[type, str]:
        return (type(obj), obj.id)

    def fetch_all(self, model: type[M], predicate: Callable[[M], bool] | None = None) -> list[M]:
        """Committed rows (in insertion order) followed by pending inserts, minus pending deletes."""
        table = self._table(model)
        with transaction(self.db_path) as conn:
            rows = conn.execute(f"SELECT * FROM {table} ORDER BY rowid").fetchall()

        results = []
        for row in rows:
            key = (model, row["id"])
            if key in self._deleted:
                continue
            obj = self._loaded.get(key)
            if obj is None:
                obj = self._row_to_model(model, row)
                self._loaded[key] = obj
            results.append(obj)
        results.extend(obj for (m, _), obj in self._new.items() if m is model)

        if predicate is not None:
            results = [obj for obj in results if predicate(obj)]
        return results

    def insert(self, obj) -> None:
        self._table(type(obj))
        self._new[self._key(obj)] = obj

    def delete(self, obj) -> None:
        key = self._key(obj)
        if self._new.pop(key, None) is not None:
            return
        self._loaded.pop(key, None)
        self._deleted[key] = obj

    def save(self) -> None:
        """Commit pending deletes, inserts, and in-place edits in one transaction."""
        if not (self._new or self._deleted or self._loaded):
            return
        with transaction(self.db_path) as conn:
            for model, memory_id in self._deleted:
                conn.execute(f"DELETE FROM {self._table(model)} WHERE id = ?", (memory_id,))
            for obj in [*self._loaded.values(), *self._new.values()]:
                self._upsert(conn, obj)

        logger.debug(
            "memory.repository_saved",
            inserted=len(self._new),
            deleted=len(self._deleted),
        )
        self._reset()

    def rollback(self) -> None:
        self._reset()

    def clear(self, model: type) -> int:
        table = self._table(model)
        with transaction(self.db_path) as conn:
            count = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            conn.execute(f"DELETE FROM {table}")

        for pending in (self._new, self._loaded, self._deleted):
            for key in [k for k in pending if k[0] is model]:
                del pending[key]
        logger.info("memory.cleared", table=table, count=count)
        return count

    def stats(self) -> dict[str, int]:
        """Committed row counts per table."""
        counts = {}
        with transaction(self.db_path) as conn:
            for model, table in _TABLES.items():
                counts[model.memory_type.value] = conn.execute(
                    f"SELECT COUNT(*) FROM {table}"
                ).fetchone()[0]
        return counts

    def _reset(self):
        self._loaded.clear()
        self._new.clear()
        self._deleted.clear()

    def _upsert(self, conn: sqlite3.Connection, obj) -> None:
        row = self._model_to_row(obj)
        columns = list(row)
        quoted = ", ".join(f'"{c}"' for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f'"{c}" = excluded."{c}"' for c in columns if c != "id")
        conn.execute(
            f"INSERT INTO {self._table(type(obj))} ({quoted}) "
            f"VALUES ({placeholders}) ON CONFLICT(id) DO UPDATE SET {updates}",
            [row[c] for c in columns],
        )

    @staticmethod
    def _model_to_row(obj) -> dict:
        row = {}
        for f in fields(obj):
            value = getattr(obj, f.name)
            row[f.name] = json.dumps(value) if f.name in _JSON_COLUMNS else value
        return row

    @staticmethod
    def _row_to_model(model: type[M], row: sqlite3.Row) -> M:
        d = dict(row)
        kwargs = {}
        for f in fields(model):
            value = d.get(f.name)
            if f.name in _JSON_COLUMNS:
                value = json.loads(value) if value else []
            kwargs[f.name] = value
        return model(**kwargs)
