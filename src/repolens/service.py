"""Entry points consumed by outer layers (HTTP handlers, CLI).

Every call takes the already-authenticated tenant id and all identifiers as
explicit parameters; nothing is remembered between calls. Read, history and
delete paths check namespace ownership before touching the store or the
interaction log.
"""

from __future__ import annotations

import logging
from pathlib import Path

from repolens.config import RepoLensConfig
from repolens.db.models import InteractionRecord
from repolens.db.repository import InteractionLog
from repolens.db.vectors import VectorStore, get_vector_store
from repolens.errors import Forbidden, InvalidArgument, RepoLensError
from repolens.ingest.chunker import FixedWindowChunker
from repolens.ingest.embedder import EmbeddingBatcher, EmbeddingConfig
from repolens.ingest.orchestrator import IngestionOrchestrator, IngestStats, ProgressCallback
from repolens.log import SECURITY_LOGGER
from repolens.namespace import SEPARATOR, authorize
from repolens.rag.query import QueryEngine, QueryResult
from repolens.rag.synthesis import AnswerSynthesizer, LiteLLMSynthesizer, SynthesisConfig

logger = logging.getLogger(__name__)
security_log = logging.getLogger(SECURITY_LOGGER)


class RepoLens:
    """Facade over ingestion, retrieval and history for all tenants.

    Collaborators default to the configured LiteLLM models and the shared
    sqlite-vec store; tests and embedding applications may inject their own.
    Nothing connects or validates credentials until the first call needs it.

    Args:
        config: Loaded configuration.
        store: Vector store client (default: process-wide store for
            ``config.vector_store.path``).
        embedder: Embedding batcher.
        synthesizer: Answer synthesis collaborator.
        interaction_log: History sink (default: same database as *store*).
    """

    def __init__(
        self,
        config: RepoLensConfig | None = None,
        *,
        store: VectorStore | None = None,
        embedder: EmbeddingBatcher | None = None,
        synthesizer: AnswerSynthesizer | None = None,
        interaction_log: InteractionLog | None = None,
    ) -> None:
        self.config = config or RepoLensConfig()
        cfg = self.config
        self.store = store or get_vector_store(cfg.vector_store.path, cfg.vector_store.timeout)
        self.embedder = embedder or EmbeddingBatcher(
            EmbeddingConfig(
                model=cfg.embedding.model,
                batch_size=cfg.embedding.batch_size,
                timeout=cfg.embedding.timeout,
            )
        )
        self.synthesizer = synthesizer or LiteLLMSynthesizer(
            SynthesisConfig(
                model=cfg.generation.model,
                temperature=cfg.generation.temperature,
                style=cfg.generation.style,
                timeout=cfg.generation.timeout,
            )
        )
        self.interaction_log = interaction_log or InteractionLog(self.store.db)

        self._orchestrator = IngestionOrchestrator(
            self.store,
            self.embedder,
            chunker=FixedWindowChunker(cfg.chunking.size, cfg.chunking.overlap),
            discovery=cfg.discovery,
            id_scheme=cfg.ingest.id_scheme,
            prune_stale=cfg.ingest.prune_stale,
        )
        self._engine = QueryEngine(
            self.store, self.embedder, self.synthesizer, self.interaction_log
        )

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_from_workspace(
        self,
        tenant_id: str,
        repo_slug: str,
        workspace_root: Path | str,
        *,
        start_offset: int = 0,
        on_batch: ProgressCallback | None = None,
    ) -> IngestStats:
        """Ingest a materialized workspace into the tenant's namespace for *repo_slug*."""
        return self._orchestrator.ingest(
            workspace_root,
            tenant_id,
            repo_slug,
            start_offset=start_offset,
            on_batch=on_batch,
        )

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def query(
        self,
        tenant_id: str,
        namespace: str,
        question: str,
        top_k: int | None = None,
    ) -> QueryResult:
        """Answer *question* from *namespace*.

        Raises:
            Forbidden: *namespace* does not belong to *tenant_id*. No embedding
                or store call is made.
        """
        self._authorize(tenant_id, namespace, "query")
        return self._engine.answer_question(
            namespace, question, top_k if top_k is not None else self.config.retrieval.top_k
        )

    def history(
        self,
        tenant_id: str,
        namespace: str,
        limit: int | None = None,
    ) -> list[InteractionRecord]:
        """Return recent interactions for *namespace*, newest first.

        History is best-effort: a storage failure yields an empty list.
        """
        self._authorize(tenant_id, namespace, "history")
        try:
            return self.interaction_log.history(
                namespace, limit if limit is not None else self.config.history.limit
            )
        except RepoLensError as exc:
            if isinstance(exc, InvalidArgument):
                raise
            logger.warning("Could not read history for %s: %s", namespace, exc)
            return []

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def remove_path(self, tenant_id: str, namespace: str, path: str) -> int:
        """Delete every vector of *path* from *namespace*. Returns rows deleted."""
        self._authorize(tenant_id, namespace, "remove")
        if not path or not path.strip():
            raise InvalidArgument("A path is required", namespace=namespace)
        removed = self.store.delete_by_path(namespace, path.strip())
        logger.info("Removed %d vectors for %s from %s", removed, path, namespace)
        return removed

    def list_namespaces(self, tenant_id: str) -> dict[str, int]:
        """Return ``{namespace: vector_count}`` for the tenant's own namespaces."""
        tenant = str(tenant_id or "").strip()
        if not tenant or SEPARATOR in tenant:
            raise InvalidArgument("A valid tenant id is required", tenant_id=tenant_id)
        return self.store.namespaces(f"{tenant}{SEPARATOR}")

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    @staticmethod
    def _authorize(tenant_id: str, namespace: str, operation: str) -> None:
        if not tenant_id or not str(tenant_id).strip():
            raise InvalidArgument("A tenant id is required")
        if not namespace or not str(namespace).strip():
            raise InvalidArgument("A namespace is required")
        if not authorize(namespace, tenant_id):
            security_log.warning(
                "Forbidden %s: tenant %r requested namespace %r",
                operation,
                tenant_id,
                namespace,
            )
            raise Forbidden(
                "Namespace does not belong to this tenant",
                namespace=namespace,
                operation=operation,
            )
