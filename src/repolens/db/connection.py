"""SQLite connection layer with the sqlite-vec extension."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import sqlite_vec

from repolens.db.migrations import run_migrations
from repolens.errors import NotConfigured, Unavailable


class Database:
    """SQLite database file with sqlite-vec vector functions loaded."""

    def __init__(self, db_path: Path | str, timeout: float = 30.0) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
            timeout: Seconds to wait for a lock held by another connection.
        """
        self.db_path = Path(db_path)
        self.timeout = timeout

    def connect(self, *, shared: bool = False) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection.

        Args:
            shared: Allow use from threads other than the creating one. The
                caller must serialise access (see VectorStore).
        """
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.timeout,
            check_same_thread=not shared,
        )
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn


class SharedDatabase:
    """Lazily opened, lock-serialised connection shared across requests.

    The connection (and schema migration) happens on first use, not at
    construction, so a process can start without a configured database.
    Every ``session()`` holds the lock for its duration; sqlite3 errors are
    translated to :class:`Unavailable` and missing configuration to
    :class:`NotConfigured`.
    """

    def __init__(self, db_path: Path | str | None, timeout: float = 30.0) -> None:
        self.db_path = Path(db_path) if db_path else None
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @contextmanager
    def session(self, operation: str, **context: object) -> Iterator[sqlite3.Connection]:
        """Yield the shared connection under the lock.

        Args:
            operation: Short name used in error messages ("upsert", "query" ...).
            context: Extra fields attached to a raised error (e.g. namespace).
        """
        with self._lock:
            conn = self._connection()
            try:
                yield conn
            except sqlite3.Error as exc:
                raise Unavailable(
                    f"Vector store {operation} failed: {exc}",
                    db=str(self.db_path),
                    **context,
                ) from exc

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        if self.db_path is None:
            raise NotConfigured(
                "Vector store path is not configured. "
                "Set vector_store.path in repolens.yaml or REPOLENS_VECTOR_DB."
            )
        try:
            conn = Database(self.db_path, timeout=self.timeout).connect(shared=True)
            run_migrations(conn)
        except sqlite3.Error as exc:
            raise Unavailable(
                f"Cannot open vector store: {exc}", db=str(self.db_path)
            ) from exc
        self._conn = conn
        return conn
