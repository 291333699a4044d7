"""repolens storage layer: sqlite-vec vector store and interaction log."""

from repolens.db.connection import Database
from repolens.db.migrations import MIGRATIONS, run_migrations
from repolens.db.repository import InteractionLog
from repolens.db.vectors import VectorStore, get_vector_store

__all__ = [
    "Database",
    "InteractionLog",
    "MIGRATIONS",
    "VectorStore",
    "get_vector_store",
    "run_migrations",
]
