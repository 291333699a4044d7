"""Query engine: question → embedding → top-K chunks → grounded answer.

The structured ``sources`` list is built from the store's matches and is the
authoritative record of what was retrieved; the free-text citations in the
answer are a convenience for humans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from repolens.db.models import InteractionRecord, QueryMatch, SourceRef
from repolens.db.repository import InteractionLog
from repolens.db.vectors import VectorStore
from repolens.errors import InvalidArgument
from repolens.ingest.embedder import EmbeddingBatcher
from repolens.rag.synthesis import INSUFFICIENT_CONTEXT_ANSWER, AnswerSynthesizer

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"
DEFAULT_TOP_K = 5


@dataclass
class QueryResult:
    answer: str
    sources: list[SourceRef] = field(default_factory=list)


def format_context(matches: list[QueryMatch]) -> str:
    """Render matches in store order as ``File: <path> (chunk <idx>) [score <s>]`` blocks."""
    blocks = []
    for m in matches:
        header = f"File: {m.path} (chunk {m.idx}) [score {m.score:.3f}]"
        blocks.append(f"{header}\n{m.text}")
    return CONTEXT_SEPARATOR.join(blocks)


class QueryEngine:
    """Answer questions against one namespace of the vector store.

    Authorization is the caller's job (see :mod:`repolens.service`); this
    class trusts the namespace it is given.

    Args:
        store: Vector store client.
        embedder: Embedding batcher (question is embedded as a 1-item batch).
        synthesizer: ``(question, context) -> answer`` collaborator.
        interaction_log: Optional best-effort history sink.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingBatcher,
        synthesizer: AnswerSynthesizer,
        interaction_log: InteractionLog | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._synthesize = synthesizer
        self._log = interaction_log

    def answer_question(
        self,
        namespace: str,
        question: str,
        top_k: int = DEFAULT_TOP_K,
    ) -> QueryResult:
        """Retrieve context for *question* in *namespace* and synthesize an answer.

        Raises:
            InvalidArgument: Empty namespace/question or top_k < 1.
            NotConfigured / Unavailable: Embedding, retrieval or synthesis
                failed. Never raised for interaction-log failures.
        """
        if not namespace:
            raise InvalidArgument("A namespace is required")
        if not question or not question.strip():
            raise InvalidArgument("A question is required", namespace=namespace)
        if top_k < 1:
            raise InvalidArgument("top_k must be >= 1", top_k=top_k)

        vector = self._embedder.embed_one(question)
        matches = self._store.query(namespace, vector, top_k)
        sources = [SourceRef(path=m.path, idx=m.idx, score=m.score) for m in matches]

        if matches:
            answer = self._synthesize(question, format_context(matches))
        else:
            logger.info("No matches in %s for question; skipping synthesis", namespace)
            answer = INSUFFICIENT_CONTEXT_ANSWER

        self._record(namespace, question, answer, sources)
        return QueryResult(answer=answer, sources=sources)

    def _record(
        self, namespace: str, question: str, answer: str, sources: list[SourceRef]
    ) -> None:
        if self._log is None:
            return
        try:
            self._log.append(
                InteractionRecord(
                    namespace=namespace, question=question, answer=answer, sources=sources
                )
            )
        except Exception as exc:
            # History is best-effort and never fails a query.
            logger.warning("Could not record interaction for %s: %s", namespace, exc)
