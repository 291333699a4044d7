"""Forward-only migration runner for the repolens database schema."""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_BOOTSTRAP_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER PRIMARY KEY,
    applied_at  TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS vectors (
    id          TEXT PRIMARY KEY,
    namespace   TEXT NOT NULL,
    path        TEXT NOT NULL,
    idx         INTEGER NOT NULL,
    text        TEXT NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    dims        INTEGER NOT NULL,
    embedding   BLOB NOT NULL,
    updated_at  DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_vectors_namespace_path ON vectors(namespace, path);

CREATE TABLE IF NOT EXISTS interactions (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    namespace   TEXT NOT NULL,
    question    TEXT NOT NULL,
    answer      TEXT NOT NULL,
    sources     TEXT NOT NULL DEFAULT '[]',
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_interactions_namespace ON interactions(namespace, id);
"""

# Versions only ever grow; never edit a released entry.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]

CURRENT_VERSION = MIGRATIONS[-1][0]


def schema_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 for a new database)."""
    conn.execute(_BOOTSTRAP_SQL)
    conn.commit()
    (version,) = conn.execute("SELECT COALESCE(MAX(version), 0) FROM schema_version").fetchone()
    return int(version)


def run_migrations(conn: sqlite3.Connection) -> int:
    """Bring *conn* up to :data:`CURRENT_VERSION`. Returns the number applied.

    Safe to call on every open. ``executescript`` commits any pending
    transaction before it runs, so each migration lands on its own.
    """
    applied = schema_version(conn)
    pending = [(v, sql) for v, sql in MIGRATIONS if v > applied]
    for version, sql in pending:
        logger.debug("Applying schema migration v%d", version)
        conn.executescript(sql)
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        conn.commit()
    return len(pending)
