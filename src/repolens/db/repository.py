"""Interaction log: append-only question/answer history per namespace.

Lives in the same SQLite file as the vectors. Callers treat it as
best-effort: the query engine absorbs any failure raised from here.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from datetime import datetime, timezone

from repolens.db.connection import SharedDatabase
from repolens.db.models import InteractionRecord, SourceRef
from repolens.errors import InvalidArgument


class InteractionLog:
    """Data access for the ``interactions`` table.

    Args:
        db: Shared database handle (usually ``VectorStore.db``).
    """

    def __init__(self, db: SharedDatabase) -> None:
        self._db = db

    def append(self, record: InteractionRecord) -> InteractionRecord:
        """Insert *record*, stamping ``timestamp`` if unset. Returns the stored record.

        Raises:
            InvalidArgument: If the record has no namespace.
            NotConfigured / Unavailable: From the underlying database.
        """
        if not record.namespace:
            raise InvalidArgument("An interaction requires a namespace")
        timestamp = record.timestamp or datetime.now(timezone.utc).isoformat()
        sources = json.dumps([asdict(s) for s in record.sources])

        with self._db.session("log", namespace=record.namespace) as conn:
            with conn:
                cur = conn.execute(
                    """
                    INSERT INTO interactions (namespace, question, answer, sources, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (record.namespace, record.question, record.answer, sources, timestamp),
                )
        record.id = cur.lastrowid
        record.timestamp = timestamp
        return record

    def history(self, namespace: str, limit: int = 50) -> list[InteractionRecord]:
        """Return up to *limit* interactions for *namespace*, newest first."""
        if not namespace:
            raise InvalidArgument("A namespace is required")
        if limit < 1:
            return []
        with self._db.session("history", namespace=namespace) as conn:
            rows = conn.execute(
                """
                SELECT id, namespace, question, answer, sources, created_at
                FROM interactions WHERE namespace = ?
                ORDER BY id DESC LIMIT ?
                """,
                (namespace, limit),
            ).fetchall()
        return [_row_to_record(r) for r in rows]


def _row_to_record(row: sqlite3.Row) -> InteractionRecord:
    return InteractionRecord(
        id=row["id"],
        namespace=row["namespace"],
        question=row["question"],
        answer=row["answer"],
        timestamp=row["created_at"],
        sources=[SourceRef(**s) for s in json.loads(row["sources"] or "[]")],
    )
