"""File discovery: eligible text files of a materialized workspace.

Filters, applied to the POSIX path relative to the workspace root:
  include   glob allow-list (default: everything)
  exclude   glob deny-list; matching directories are not descended into
  hidden    dot-prefixed entries are skipped unless include_hidden is set
  extension allow-list; anything else is treated as non-text and skipped
  deny      regex list for generated / noisy artifacts (lockfiles, build output)

The result is sorted lexically by relative path so that an unchanged tree
always yields the same global chunk sequence.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import Path

from repolens.config import DEFAULT_DENY, DEFAULT_EXCLUDE, DEFAULT_EXTENSIONS
from repolens.db.models import SourceFile
from repolens.errors import InvalidArgument

logger = logging.getLogger(__name__)

_MAX_DEPTH = 64


def discover(
    root: Path | str,
    include_globs: Sequence[str] = ("**/*",),
    exclude_globs: Sequence[str] = DEFAULT_EXCLUDE,
    deny_patterns: Sequence[str] = DEFAULT_DENY,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    include_hidden: bool = False,
) -> list[str]:
    """Return eligible files under *root* as sorted POSIX relative paths.

    Dot-prefixed files and directories (``.github/``, ``.eslintrc.json``) are
    skipped unless *include_hidden* is set.

    Raises:
        InvalidArgument: If *root* is not an existing directory.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise InvalidArgument("Workspace root is not a directory", workspace=str(root))
    root_path = root_path.resolve()

    allowed_ext = {e.lower() for e in extensions}
    deny = [re.compile(p) for p in deny_patterns]

    found: list[str] = []
    for rel in _walk(root_path, root_path, exclude_globs, include_hidden, depth=0):
        if not any(_glob_match(rel, pat) for pat in include_globs):
            continue
        if Path(rel).suffix.lower() not in allowed_ext:
            continue
        if any(rx.search(rel) for rx in deny):
            continue
        found.append(rel)

    found.sort()
    logger.debug("Discovered %d eligible files under %s", len(found), root_path)
    return found


def read_source(root: Path | str, rel_path: str) -> SourceFile | None:
    """Read *rel_path* as UTF-8 text. Returns None (with a warning) if unreadable.

    Line endings are kept as stored. Invalid byte sequences are replaced
    rather than rejected.
    """
    full = Path(root) / rel_path
    try:
        raw = full.read_bytes()
    except OSError as exc:
        logger.warning("Skipping unreadable file %s: %s", rel_path, exc)
        return None
    return SourceFile(path=rel_path, text=raw.decode("utf-8", errors="replace"))


# ------------------------------------------------------------------
# Directory walk
# ------------------------------------------------------------------


def _walk(
    directory: Path,
    root: Path,
    exclude: Sequence[str],
    include_hidden: bool,
    depth: int,
) -> Iterable[str]:
    """Yield relative paths of regular files, pruning excluded directories."""
    if depth > _MAX_DEPTH:
        logger.warning("Maximum directory depth reached at %s", directory)
        return
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        logger.warning("Skipping unreadable directory %s: %s", directory, exc)
        return

    for entry in entries:
        if not include_hidden and entry.name.startswith("."):
            continue
        rel = entry.relative_to(root).as_posix()
        if entry.is_symlink() and not _inside(entry, root):
            logger.warning("Skipping symlink outside workspace: %s", rel)
            continue
        if entry.is_dir():
            if entry.is_symlink():
                continue
            if any(_glob_match(rel + "/", pat) for pat in exclude):
                continue
            yield from _walk(entry, root, exclude, include_hidden, depth + 1)
        elif entry.is_file():
            if any(_glob_match(rel, pat) for pat in exclude):
                continue
            yield rel


def _inside(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root)
    except (OSError, ValueError):
        return False
    return True


def _glob_match(rel_path: str, pattern: str) -> bool:
    """fnmatch with leading ``**/`` also matching at the workspace root.

    ``*`` in fnmatch spans ``/``, so ``**/node_modules/**`` matches
    ``a/node_modules/x.js`` and, via the stripped form, ``node_modules/x.js``.
    """
    candidates = [pattern]
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        candidates.append(pattern)
    return any(fnmatch.fnmatchcase(rel_path, p) for p in candidates)
