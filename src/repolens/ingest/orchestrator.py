"""Ingestion orchestrator: workspace → chunks → embeddings → vector store.

Pipeline for one ``ingest()`` call:
  1. Derive the namespace from (tenant id, repo slug).
  2. Discover eligible files (sorted, deterministic).
  3. Read and chunk each file in discovery order into one global sequence.
  4. Walk the sequence in fixed-size batches: embed, build records, upsert.
  5. Return aggregate counts.

A file that cannot be read contributes zero chunks. A failed batch aborts the
call: the original error is re-raised with ``namespace``, ``batch_index``,
``upserted`` (vectors durably written before the failure) and ``next_offset``
(pass as ``start_offset`` to resume) added to its context. Earlier batches
are not rolled back.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from repolens.config import DiscoveryCfg
from repolens.db.models import Chunk, VectorRecord
from repolens.db.vectors import VectorStore
from repolens.errors import InvalidArgument, RepoLensError
from repolens.ingest.chunker import FixedWindowChunker
from repolens.ingest.discover import discover, read_source
from repolens.ingest.embedder import EmbeddingBatcher
from repolens.namespace import derive_namespace

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class IngestStats:
    """Result of one ingestion run."""

    namespace: str
    file_count: int = 0
    chunk_count: int = 0
    upserted: int = 0
    skipped_files: list[str] = field(default_factory=list)
    pruned: int = 0


class IngestionOrchestrator:
    """Compose discovery, chunking, embedding and upsert for one workspace.

    Holds no per-request state; one instance may serve concurrent calls for
    different namespaces.

    Args:
        store: Vector store client.
        embedder: Embedding batcher (its ``batch_size`` sets the upsert batch).
        chunker: Window chunker (defaults to 1800 / 200).
        discovery: File filters (defaults to the reference allow/deny lists).
        id_scheme: 'positional' or 'stable' vector ids.
        prune_stale: Delete vectors not rewritten by a complete run.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingBatcher,
        chunker: FixedWindowChunker | None = None,
        discovery: DiscoveryCfg | None = None,
        id_scheme: str = "positional",
        prune_stale: bool = False,
    ) -> None:
        if id_scheme not in ("positional", "stable"):
            raise ValueError(f"Unknown id_scheme: {id_scheme!r}")
        self._store = store
        self._embedder = embedder
        self._chunker = chunker or FixedWindowChunker()
        self._discovery = discovery or DiscoveryCfg()
        self._id_scheme = id_scheme
        self._prune_stale = prune_stale

    def ingest(
        self,
        workspace_root: Path | str,
        tenant_id: str,
        repo_slug: str,
        *,
        start_offset: int = 0,
        on_batch: ProgressCallback | None = None,
    ) -> IngestStats:
        """Ingest *workspace_root* into the ``{tenant_id}:{repo_slug}`` namespace.

        Args:
            workspace_root: Materialized repository directory.
            tenant_id: Authenticated tenant id.
            repo_slug: Repository slug, e.g. ``owner/repo``.
            start_offset: Skip chunks whose global offset is below this value
                (resume after a failed run).
            on_batch: Called as ``on_batch(upserted, total)`` after each batch.

        Raises:
            InvalidArgument: Bad identifiers, workspace root or start offset.
            NotConfigured / Unavailable: From the embedder or store, with
                partial-ingestion context attached.
        """
        namespace = derive_namespace(tenant_id, repo_slug)
        if not workspace_root or not str(workspace_root).strip():
            raise InvalidArgument("A workspace root is required", namespace=namespace)
        if start_offset < 0:
            raise InvalidArgument("start_offset must be >= 0", start_offset=start_offset)

        paths = discover(
            workspace_root,
            include_globs=self._discovery.include,
            exclude_globs=self._discovery.exclude,
            deny_patterns=self._discovery.deny,
            extensions=self._discovery.extensions,
            include_hidden=self._discovery.include_hidden,
        )
        stats = IngestStats(namespace=namespace, file_count=len(paths))

        chunks = self._collect_chunks(workspace_root, paths, tenant_id, repo_slug, stats)
        stats.chunk_count = len(chunks)

        written_ids = self._embed_and_upsert(namespace, chunks, start_offset, stats, on_batch)

        if self._prune_stale and start_offset == 0:
            stats.pruned = self._store.delete_except(namespace, written_ids)

        logger.info(
            "Ingested %s: %d files, %d chunks, %d upserted",
            namespace,
            stats.file_count,
            stats.chunk_count,
            stats.upserted,
        )
        return stats

    # ------------------------------------------------------------------
    # Chunking
    # ------------------------------------------------------------------

    def _collect_chunks(
        self,
        root: Path | str,
        paths: list[str],
        tenant_id: str,
        repo_slug: str,
        stats: IngestStats,
    ) -> list[Chunk]:
        tenant = str(tenant_id).strip()
        slug = str(repo_slug).strip()
        chunks: list[Chunk] = []
        for rel in paths:
            source = read_source(root, rel)
            if source is None:
                stats.skipped_files.append(rel)
                continue
            for idx, text in enumerate(self._chunker.split(source.text)):
                chunks.append(
                    Chunk(path=rel, idx=idx, text=text, repo_slug=slug, tenant_id=tenant)
                )
        return chunks

    # ------------------------------------------------------------------
    # Embed + upsert
    # ------------------------------------------------------------------

    def _embed_and_upsert(
        self,
        namespace: str,
        chunks: list[Chunk],
        start_offset: int,
        stats: IngestStats,
        on_batch: ProgressCallback | None,
    ) -> set[str]:
        batch_size = self._embedder.batch_size
        total = len(chunks)
        written: set[str] = set()

        for batch_index, offset in enumerate(range(start_offset, total, batch_size)):
            batch = chunks[offset:offset + batch_size]
            try:
                vectors = self._embedder.embed_batch([c.text for c in batch])
                records = [
                    VectorRecord.from_chunk(
                        vector_id(namespace, c, offset + k, self._id_scheme), values, c
                    )
                    for k, (c, values) in enumerate(zip(batch, vectors))
                ]
                self._store.upsert(namespace, records)
            except RepoLensError as exc:
                logger.error(
                    "Ingestion of %s aborted at batch %d (offset %d): %s",
                    namespace,
                    batch_index,
                    offset,
                    exc.message,
                )
                raise exc.add_context(
                    namespace=namespace,
                    batch_index=batch_index,
                    upserted=stats.upserted,
                    next_offset=offset,
                )

            stats.upserted += len(records)
            written.update(r.id for r in records)
            logger.debug(
                "Batch %d of %s: %d vectors (offset %d)",
                batch_index,
                namespace,
                len(records),
                offset,
            )
            if on_batch is not None:
                on_batch(stats.upserted, total - start_offset)

        return written


def vector_id(namespace: str, chunk: Chunk, global_offset: int, scheme: str = "positional") -> str:
    """Return the vector id for *chunk*.

    positional: ``{namespace}:{global_offset}``. Shifts when files are added
        or removed ahead of the chunk in discovery order.
    stable: ``{namespace}:{sha256(namespace, path, idx)[:32]}``. Depends only
        on the chunk's own file and position within it.
    """
    if scheme == "stable":
        digest = hashlib.sha256(
            f"{namespace}\0{chunk.path}\0{chunk.idx}".encode("utf-8")
        ).hexdigest()[:32]
        return f"{namespace}:{digest}"
    return f"{namespace}:{global_offset}"
