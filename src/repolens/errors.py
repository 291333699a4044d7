"""Error taxonomy shared by the ingestion and retrieval pipeline.

  InvalidArgument  malformed tenant id, repo slug, namespace or missing input.
  Forbidden        namespace does not belong to the calling tenant.
  NotConfigured    provider credentials / endpoints absent (deployment error).
  Unavailable      transient failure reaching the embedding provider or store.

None of these are retried internally; callers decide on retry policy.
"""

from __future__ import annotations

from typing import Any


class RepoLensError(Exception):
    """Base class for all pipeline errors.

    Carries a *context* dict (namespace, batch index, counts ...) that is
    rendered into ``str(exc)`` so failures can be diagnosed without replaying.
    """

    retryable: bool = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context)

    def add_context(self, **context: Any) -> RepoLensError:
        """Merge *context* into this error and return it (for ``raise``)."""
        self.context.update(context)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class InvalidArgument(RepoLensError):
    """Caller supplied malformed or missing input."""


class Forbidden(RepoLensError):
    """Namespace is not owned by the calling tenant."""


class NotConfigured(RepoLensError):
    """A required credential or endpoint is missing."""


class Unavailable(RepoLensError):
    """Embedding provider or vector store could not be reached."""

    retryable = True
