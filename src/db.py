"""Shared SQLite helpers: WAL mode, row_factory defaults."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def wal_connect(db_path: str | Path, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(db_path: str | Path) -> Iterator[sqlite3.Connection]:
    """Yield a WAL connection that commits on success, rolls back on error, always closes."""
    conn = wal_connect(db_path, row_factory=True)
    try:
        with conn:
            yield conn
    finally:
        conn.close()
