"""Namespace-partitioned vector store on SQLite + sqlite-vec.

Each row holds one chunk vector (float32 BLOB) together with a verbatim copy
of the chunk text, so a query can render citations without reading files.
Similarity is cosine: ``score = 1 - vec_distance_cosine(embedding, query)``.

A batch upsert runs in one transaction: it is applied completely or not at
all, and any failure surfaces as :class:`Unavailable`.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from sqlite_vec import serialize_float32

from repolens.db.connection import SharedDatabase
from repolens.db.models import QueryMatch, VectorRecord
from repolens.errors import InvalidArgument

logger = logging.getLogger(__name__)

# Columns stored outside the metadata JSON blob.
_COLUMN_KEYS = ("path", "idx", "text")

_stores: dict[tuple[str, float], VectorStore] = {}
_stores_lock = threading.Lock()


class VectorStore:
    """Upsert and nearest-neighbour query scoped to one namespace per call.

    Safe for concurrent use: all statements go through a single shared
    connection serialised by :class:`SharedDatabase`.

    Args:
        db: Shared database handle, or a path (``None`` defers a
            NotConfigured error to first use).
        timeout: SQLite busy timeout when *db* is a path.
    """

    def __init__(self, db: SharedDatabase | Path | str | None, timeout: float = 30.0) -> None:
        self.db = db if isinstance(db, SharedDatabase) else SharedDatabase(db, timeout)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, namespace: str, records: list[VectorRecord]) -> None:
        """Insert or overwrite *records* in *namespace* atomically.

        Raises:
            InvalidArgument: Empty namespace, mixed vector dimensions, or an id
                outside *namespace*.
            NotConfigured: No database path configured.
            Unavailable: The database could not be written.
        """
        _require_namespace(namespace)
        if not records:
            return
        prefix = f"{namespace}:"
        foreign = [r.id for r in records if not r.id.startswith(prefix)]
        if foreign:
            raise InvalidArgument(
                "Vector ids must start with the namespace",
                namespace=namespace,
                id=foreign[0],
            )
        dims = len(records[0].values)
        if dims == 0 or any(len(r.values) != dims for r in records):
            raise InvalidArgument(
                "All vectors in a batch must share one non-zero dimension",
                namespace=namespace,
            )

        rows = [_record_to_row(namespace, r, dims) for r in records]
        with self.db.session("upsert", namespace=namespace) as conn:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO vectors (id, namespace, path, idx, text, metadata, dims, embedding)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        namespace  = excluded.namespace,
                        path       = excluded.path,
                        idx        = excluded.idx,
                        text       = excluded.text,
                        metadata   = excluded.metadata,
                        dims       = excluded.dims,
                        embedding  = excluded.embedding,
                        updated_at = datetime('now')
                    """,
                    rows,
                )
        logger.debug("Upserted %d vectors into %s", len(rows), namespace)

    def delete_by_path(self, namespace: str, path: str) -> int:
        """Delete every vector of *path* in *namespace*. Returns rows deleted."""
        _require_namespace(namespace)
        with self.db.session("delete", namespace=namespace) as conn:
            with conn:
                cur = conn.execute(
                    "DELETE FROM vectors WHERE namespace = ? AND path = ?",
                    (namespace, path),
                )
        return cur.rowcount

    def delete_except(self, namespace: str, keep_ids: Iterable[str]) -> int:
        """Delete vectors in *namespace* whose id is not in *keep_ids*."""
        _require_namespace(namespace)
        keep = set(keep_ids)
        with self.db.session("prune", namespace=namespace) as conn:
            existing = [
                row["id"]
                for row in conn.execute(
                    "SELECT id FROM vectors WHERE namespace = ?", (namespace,)
                ).fetchall()
            ]
            stale = [(i,) for i in existing if i not in keep]
            if stale:
                with conn:
                    conn.executemany("DELETE FROM vectors WHERE id = ?", stale)
        return len(stale)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(self, namespace: str, vector: list[float], top_k: int) -> list[QueryMatch]:
        """Return up to *top_k* matches in *namespace*, best first.

        Only vectors with the same dimensionality as *vector* are compared.
        """
        _require_namespace(namespace)
        if top_k < 1:
            raise InvalidArgument("top_k must be >= 1", top_k=top_k)
        if not vector:
            raise InvalidArgument("Query vector is empty", namespace=namespace)

        with self.db.session("query", namespace=namespace) as conn:
            rows = conn.execute(
                """
                SELECT id, path, idx, text, metadata,
                       vec_distance_cosine(embedding, ?) AS distance
                FROM vectors
                WHERE namespace = ? AND dims = ?
                ORDER BY distance ASC, id ASC
                LIMIT ?
                """,
                (serialize_float32(vector), namespace, len(vector), top_k),
            ).fetchall()
        return [_row_to_match(row) for row in rows]

    def namespaces(self, prefix: str) -> dict[str, int]:
        """Return ``{namespace: vector_count}`` for namespaces starting with *prefix*."""
        if not prefix:
            raise InvalidArgument("A namespace prefix is required")
        with self.db.session("list") as conn:
            rows = conn.execute(
                """
                SELECT namespace, COUNT(*) AS n FROM vectors
                WHERE substr(namespace, 1, ?) = ?
                GROUP BY namespace ORDER BY namespace
                """,
                (len(prefix), prefix),
            ).fetchall()
        return {r["namespace"]: r["n"] for r in rows}


def get_vector_store(db_path: Path | str | None, timeout: float = 30.0) -> VectorStore:
    """Return the process-wide store for *db_path*, creating it lazily.

    No connection is opened here; that happens on first operation.
    """
    if not db_path:
        return VectorStore(None, timeout)
    key = (str(Path(db_path).resolve()), timeout)
    with _stores_lock:
        store = _stores.get(key)
        if store is None:
            store = VectorStore(db_path, timeout)
            _stores[key] = store
        return store


# ------------------------------------------------------------------
# Row helpers
# ------------------------------------------------------------------


def _require_namespace(namespace: str) -> None:
    if not namespace or not str(namespace).strip():
        raise InvalidArgument("A namespace is required")


def _record_to_row(namespace: str, record: VectorRecord, dims: int) -> tuple:
    meta = dict(record.metadata)
    extra = {k: v for k, v in meta.items() if k not in _COLUMN_KEYS}
    return (
        record.id,
        namespace,
        str(meta.get("path", "")),
        int(meta.get("idx", 0)),
        str(meta.get("text", "")),
        json.dumps(extra, sort_keys=True),
        dims,
        serialize_float32(record.values),
    )


def _row_to_match(row) -> QueryMatch:
    metadata = json.loads(row["metadata"] or "{}")
    metadata.update(path=row["path"], idx=row["idx"], text=row["text"])
    return QueryMatch(id=row["id"], score=1.0 - float(row["distance"]), metadata=metadata)
