"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from repolens.db.connection import SharedDatabase
from repolens.db.repository import InteractionLog
from repolens.db.vectors import VectorStore
from repolens.ingest.embedder import EmbeddingBatcher, EmbeddingConfig
from repolens.service import RepoLens

DIMS = 8


def fake_vector(text: str) -> list[float]:
    """Deterministic, never-zero 8-dim vector derived from character codes."""
    vec = [1.0] + [0.0] * (DIMS - 1)
    for ch in text:
        vec[1 + ord(ch) % (DIMS - 1)] += 1.0
    return vec


class FakeEmbedder(EmbeddingBatcher):
    """EmbeddingBatcher that never calls a provider; records each batch."""

    def __init__(self, batch_size: int = 64, fail_on_call: int | None = None, error=None):
        super().__init__(EmbeddingConfig(model="fake/model", batch_size=batch_size))
        self.calls: list[list[str]] = []
        self._fail_on_call = fail_on_call
        self._error = error

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        self.calls.append(list(texts))
        if self._fail_on_call is not None and len(self.calls) == self._fail_on_call:
            raise self._error
        return [fake_vector(t) for t in texts]


class FakeSynthesizer:
    """Answer synthesizer that echoes what it was given."""

    def __init__(self, answer: str = "main() does nothing.\n\nSources:\n- src/app.js (chunk 0)"):
        self.answer = answer
        self.calls: list[tuple[str, str]] = []

    def __call__(self, question: str, context: str) -> str:
        self.calls.append((question, context))
        return self.answer


@pytest.fixture
def shared_db(tmp_path):
    """File-based shared DB in tmp_path, closed after the test."""
    db = SharedDatabase(tmp_path / ".repolens.db")
    yield db
    db.close()


@pytest.fixture
def store(shared_db) -> VectorStore:
    return VectorStore(shared_db)


@pytest.fixture
def stored_ids(shared_db):
    """Return a function listing the sorted vector ids of a namespace."""

    def _ids(namespace: str) -> list[str]:
        with shared_db.session("check") as conn:
            rows = conn.execute(
                "SELECT id FROM vectors WHERE namespace = ? ORDER BY id", (namespace,)
            ).fetchall()
        return [r["id"] for r in rows]

    return _ids


@pytest.fixture
def stored_count(stored_ids):
    """Return a function counting the vectors of a namespace."""
    return lambda namespace: len(stored_ids(namespace))


@pytest.fixture
def interaction_log(shared_db) -> InteractionLog:
    return InteractionLog(shared_db)


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def make_workspace(tmp_path):
    """Factory: write ``{relative_path: content}`` under a fresh directory."""

    def _make(files: dict[str, str], name: str = "workspace") -> Path:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        for rel, content in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def embedder_factory():
    """The FakeEmbedder class, for tests that need custom batch sizes or failures."""
    return FakeEmbedder


@pytest.fixture
def vector_of():
    return fake_vector


@pytest.fixture
def lens(store, interaction_log, fake_embedder, fake_synthesizer) -> RepoLens:
    """RepoLens wired to the tmp store and fake providers."""
    return RepoLens(
        store=store,
        embedder=fake_embedder,
        synthesizer=fake_synthesizer,
        interaction_log=interaction_log,
    )
