"""repolens configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not here)
  2. Environment variables  (REPOLENS_EMBEDDING_MODEL, REPOLENS_GENERATION_MODEL,
                             REPOLENS_VECTOR_DB)
  3. Per-project repolens.yaml
  4. Global ~/.repolens/config.yaml  (model defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".repolens"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "repolens.yaml"

_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "embedding",
        "generation",
        "vector_store",
        "chunking",
        "discovery",
        "retrieval",
        "history",
        "ingest",
    ]
)

DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".js", ".ts", ".tsx", ".jsx", ".json", ".md", ".yml", ".yaml",
    ".sql", ".sh", ".html", ".css", ".scss", ".xml",
)

DEFAULT_EXCLUDE: tuple[str, ...] = (
    "**/node_modules/**",
    "**/.git/**",
    "**/dist/**",
    "**/build/**",
)

# Lockfiles and generated output; matched with re.search against the
# POSIX relative path.
DEFAULT_DENY: tuple[str, ...] = (
    r"(^|/)package-lock\.json$",
    r"(^|/)npm-shrinkwrap\.json$",
    r"(^|/)yarn\.lock$",
    r"(^|/)pnpm-lock\.ya?ml$",
    r"(^|/)bun\.lockb?$",
    r"(^|/)node_modules/",
    r"(^|/)\.git/",
    r"(^|/)(dist|build)/",
)

ID_SCHEMES: frozenset[str] = frozenset(["positional", "stable"])
ANSWER_STYLES: frozenset[str] = frozenset(["concise", "verbose"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding provider configuration (repolens.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    batch_size: int = 64
    timeout: float = 60.0


@dataclass
class GenerationCfg:
    """Answer synthesis configuration (repolens.yaml: generation:)."""

    model: str = "openai/gpt-4o-mini"
    temperature: float = 0.2
    style: str = "concise"  # concise | verbose
    timeout: float = 120.0


@dataclass
class VectorStoreCfg:
    """Vector store location (repolens.yaml: vector_store:).

    Attributes:
        path: SQLite database file holding vectors and interaction history.
            No default: an unset path raises NotConfigured on first use.
        timeout: Seconds to wait on a locked database before failing.
    """

    path: str | None = None
    timeout: float = 30.0


@dataclass
class ChunkingCfg:
    """Fixed-window chunking in characters (repolens.yaml: chunking:)."""

    size: int = 1800
    overlap: int = 200


@dataclass
class DiscoveryCfg:
    """File discovery filters (repolens.yaml: discovery:)."""

    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    include: list[str] = field(default_factory=lambda: ["**/*"])
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    deny: list[str] = field(default_factory=lambda: list(DEFAULT_DENY))
    include_hidden: bool = False


@dataclass
class RetrievalCfg:
    top_k: int = 5


@dataclass
class HistoryCfg:
    limit: int = 50


@dataclass
class IngestCfg:
    """Ingestion behaviour (repolens.yaml: ingest:).

    Attributes:
        id_scheme: 'positional' → ``{namespace}:{global_offset}``;
            'stable' → ``{namespace}:{hash(namespace, path, idx)}``.
        prune_stale: Delete namespace vectors not rewritten by a complete run.
    """

    id_scheme: str = "positional"
    prune_stale: bool = False


@dataclass
class RepoLensConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    vector_store: VectorStoreCfg = field(default_factory=VectorStoreCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    discovery: DiscoveryCfg = field(default_factory=DiscoveryCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    history: HistoryCfg = field(default_factory=HistoryCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def validate_config(cfg: RepoLensConfig) -> None:
    """Raise ConfigError for values the pipeline cannot run with."""
    ch = cfg.chunking
    if ch.size < 1:
        raise ConfigError(f"chunking.size must be >= 1, got {ch.size}")
    if not 0 <= ch.overlap < ch.size:
        raise ConfigError(
            f"chunking.overlap must be >= 0 and < chunking.size "
            f"(size={ch.size}, overlap={ch.overlap})"
        )
    if cfg.embedding.batch_size < 1:
        raise ConfigError(
            f"embedding.batch_size must be >= 1, got {cfg.embedding.batch_size}"
        )
    if cfg.retrieval.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {cfg.retrieval.top_k}")
    if cfg.ingest.id_scheme not in ID_SCHEMES:
        raise ConfigError(
            f"ingest.id_scheme must be one of {sorted(ID_SCHEMES)}, "
            f"got '{cfg.ingest.id_scheme}'"
        )
    if cfg.generation.style not in ANSWER_STYLES:
        raise ConfigError(
            f"generation.style must be one of {sorted(ANSWER_STYLES)}, "
            f"got '{cfg.generation.style}'"
        )
    for pattern in cfg.discovery.deny:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ConfigError(f"discovery.deny pattern {pattern!r} is invalid: {exc}") from exc


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _str_list(value: Any, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _normalise_ext(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def _cfg_from_dict(data: dict[str, Any]) -> RepoLensConfig:
    """Build a *RepoLensConfig* from a merged raw YAML dict."""
    cfg = RepoLensConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
            style=str(g.get("style", cfg.generation.style)),
            timeout=float(g.get("timeout", cfg.generation.timeout)),
        )

    if "vector_store" in data:
        v = data["vector_store"] or {}
        path = v.get("path")
        cfg.vector_store = VectorStoreCfg(
            path=str(path) if path else None,
            timeout=float(v.get("timeout", cfg.vector_store.timeout)),
        )

    if "chunking" in data:
        c = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            size=int(c.get("size", cfg.chunking.size)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )

    if "discovery" in data:
        d = data["discovery"] or {}
        extensions = _str_list(d.get("extensions"), cfg.discovery.extensions)
        extensions += _str_list(d.get("extra_extensions"), [])
        deny = _str_list(d.get("deny"), cfg.discovery.deny)
        deny += _str_list(d.get("extra_deny"), [])
        cfg.discovery = DiscoveryCfg(
            extensions=sorted({_normalise_ext(e) for e in extensions}),
            include=_str_list(d.get("include"), cfg.discovery.include),
            exclude=_str_list(d.get("exclude"), cfg.discovery.exclude),
            deny=deny,
            include_hidden=bool(d.get("include_hidden", cfg.discovery.include_hidden)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg.retrieval = RetrievalCfg(top_k=int(r.get("top_k", cfg.retrieval.top_k)))

    if "history" in data:
        h = data["history"] or {}
        cfg.history = HistoryCfg(limit=int(h.get("limit", cfg.history.limit)))

    if "ingest" in data:
        i = data["ingest"] or {}
        cfg.ingest = IngestCfg(
            id_scheme=str(i.get("id_scheme", cfg.ingest.id_scheme)),
            prune_stale=bool(i.get("prune_stale", cfg.ingest.prune_stale)),
        )

    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must contain a mapping at the top level")
    return data


def _apply_env_overrides(cfg: RepoLensConfig) -> RepoLensConfig:
    """Apply REPOLENS_* environment variable overrides (layer 2)."""
    if model := os.environ.get("REPOLENS_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("REPOLENS_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("REPOLENS_VECTOR_DB"):
        cfg.vector_store.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RepoLensConfig:
    """Load and return a merged *RepoLensConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *repolens.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            fails validation (e.g. chunk overlap >= chunk size).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    try:
        cfg = _cfg_from_dict(merged)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc

    cfg = _apply_env_overrides(cfg)
    validate_config(cfg)
    return cfg
