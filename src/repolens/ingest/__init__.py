"""repolens ingest pipeline: discovery, chunking, embedding, orchestration."""

from repolens.ingest.chunker import FixedWindowChunker, chunk
from repolens.ingest.discover import discover, read_source
from repolens.ingest.embedder import EmbeddingBatcher
from repolens.ingest.orchestrator import IngestionOrchestrator, IngestStats

__all__ = [
    "EmbeddingBatcher",
    "FixedWindowChunker",
    "IngestStats",
    "IngestionOrchestrator",
    "chunk",
    "discover",
    "read_source",
]
