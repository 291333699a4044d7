"""Domain models shared by the ingestion and retrieval pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SourceFile:
    """A discovered file's text; consumed once by the chunker."""

    path: str
    text: str


@dataclass
class Chunk:
    """One window of a file. ``(path, idx)`` is unique within a run."""

    path: str
    idx: int
    text: str
    repo_slug: str
    tenant_id: str


@dataclass
class VectorRecord:
    id: str
    values: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_chunk(cls, record_id: str, values: list[float], chunk: Chunk) -> VectorRecord:
        """Build a record whose metadata carries a verbatim copy of the chunk text."""
        return cls(
            id=record_id,
            values=values,
            metadata={
                "path": chunk.path,
                "idx": chunk.idx,
                "text": chunk.text,
                "repo_slug": chunk.repo_slug,
                "tenant_id": chunk.tenant_id,
            },
        )


@dataclass
class QueryMatch:
    """A nearest-neighbour hit. ``score`` is cosine similarity in [-1, 1]."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return str(self.metadata.get("path", ""))

    @property
    def idx(self) -> int:
        return int(self.metadata.get("idx", 0))

    @property
    def text(self) -> str:
        return str(self.metadata.get("text", ""))


@dataclass
class SourceRef:
    """Structured citation returned alongside an answer."""

    path: str
    idx: int
    score: float


@dataclass
class InteractionRecord:
    namespace: str
    question: str
    answer: str
    timestamp: str | None = None
    sources: list[SourceRef] = field(default_factory=list)
    id: int | None = None  # set after insert
