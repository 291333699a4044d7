"""Embedding batcher: one provider call per bounded batch.

Providers charge per call and cap request payloads; batching amortises the
per-call overhead while bounding the worst-case payload. Batches are sent
strictly one after another. A failed batch raises; there is no partial
continuation.
"""

from __future__ import annotations

from dataclasses import dataclass

from repolens.rag import llm_client


@dataclass
class EmbeddingConfig:
    """Configuration for embedding generation."""

    model: str = "openai/text-embedding-3-small"
    batch_size: int = 64
    timeout: float | None = 60.0


class EmbeddingBatcher:
    """Embed lists of texts through :mod:`repolens.rag.llm_client`.

    Args:
        config: Embedding model, batch size and per-call timeout.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()
        if self._config.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

    @property
    def batch_size(self) -> int:
        return self._config.batch_size

    @property
    def model(self) -> str:
        return self._config.model

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in input order. Empty input → no call."""
        if not texts:
            return []
        return llm_client.embed(self._config.model, list(texts), timeout=self._config.timeout)

    def embed_one(self, text: str) -> list[float]:
        """Embed a single text as a one-item batch."""
        return self.embed_batch([text])[0]

