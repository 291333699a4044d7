"""Shared CLI plumbing: config loading and service construction."""

from __future__ import annotations

from pathlib import Path

from repolens.config import RepoLensConfig, load_config
from repolens.service import RepoLens

DEFAULT_DB = Path(".repolens.db")


def open_service(
    db: Path | None,
    top_k: int | None = None,
    prune: bool = False,
) -> RepoLens:
    """Build a :class:`RepoLens` from repolens.yaml, with ``--db`` taking priority.

    Raises:
        ConfigError: If the config files are invalid.
    """
    cfg: RepoLensConfig = load_config()
    if db is not None:
        cfg.vector_store.path = str(db)
    elif not cfg.vector_store.path:
        cfg.vector_store.path = str(DEFAULT_DB)
    if top_k is not None:
        cfg.retrieval.top_k = top_k
    if prune:
        cfg.ingest.prune_stale = True
    return RepoLens(cfg)
