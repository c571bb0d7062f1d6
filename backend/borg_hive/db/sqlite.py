"""SQLite storage of the vinculum."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from borg_hive.core.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA busy_timeout=5000;",
)


class SQLiteDatabase:
    """One connection shared by all request handlers.

    Statements are serialized through a lock, so the connection may be used
    from the event loop and from worker threads alike.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path.expanduser()
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def connect(self) -> sqlite3.Connection:
        with self._lock:
            if self._connection is None:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                for pragma in PRAGMAS:
                    conn.execute(pragma)
                self._connection = conn
            return self._connection

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        with self._lock:
            return self.connect().execute(sql, params or []).fetchall()

    def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
        with self._lock:
            return self.connect().execute(sql, params or []).fetchone()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor; commit on success, roll back on any error."""
        with self._lock:
            conn = self.connect()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def ensure_schema(self) -> None:
        """Create missing tables and stamp the schema version."""
        with self._lock:
            conn = self.connect()
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            if version > SCHEMA_VERSION:
                raise RuntimeError(
                    f"{self.db_path} has schema version {version}, this vinculum supports {SCHEMA_VERSION}"
                )
            conn.executescript(Path(__file__).with_name("schema.sql").read_text(encoding="utf-8"))
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            if version < SCHEMA_VERSION:
                logger.info("Initialized database %s at schema version %s", self.db_path, SCHEMA_VERSION)


__all__ = ["SCHEMA_VERSION", "SQLiteDatabase"]
