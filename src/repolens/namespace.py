"""Namespace authority: the one place that derives and checks partition keys.

A namespace is ``"{tenant_id}:{repo_slug}"``. Every vector read or write and
every interaction-log access is scoped to exactly one namespace, and reads are
only permitted when the namespace is prefixed by the caller's own tenant id.
"""

from __future__ import annotations

import urllib.parse

from repolens.errors import InvalidArgument

SEPARATOR = ":"


def derive_namespace(tenant_id: str, repo_slug: str) -> str:
    """Return the namespace for *tenant_id* and *repo_slug*.

    Raises:
        InvalidArgument: If either value is empty after trimming, or the
            tenant id contains the separator (which would make tenant
            prefixes ambiguous).
    """
    tenant = str(tenant_id or "").strip()
    slug = str(repo_slug or "").strip()
    if not tenant or not slug:
        raise InvalidArgument(
            "A namespace requires both a tenant id and a repository slug",
            tenant_id=tenant_id,
            repo_slug=repo_slug,
        )
    if SEPARATOR in tenant:
        raise InvalidArgument(
            f"Tenant id must not contain '{SEPARATOR}'", tenant_id=tenant_id
        )
    return f"{tenant}{SEPARATOR}{slug}"


def authorize(namespace: str, tenant_id: str) -> bool:
    """Return True iff *namespace* is ``"{tenant_id}:" + rest`` with non-empty rest.

    Tenant ``"ab"`` is never authorized for ``"abc:repo"``: the separator is
    part of the required prefix.
    """
    if not namespace or not tenant_id:
        return False
    tenant = str(tenant_id)
    if SEPARATOR in tenant or tenant != tenant.strip():
        return False
    prefix = f"{tenant}{SEPARATOR}"
    return namespace.startswith(prefix) and len(namespace) > len(prefix)


def parse_github_repo_url(repo_url: str) -> tuple[str, str] | None:
    """Parse ``https://github.com/<owner>/<repo>[.git]`` into ``(owner, repo)``.

    Returns None for anything that is not a github.com repository URL.
    """
    try:
        url = urllib.parse.urlparse(repo_url)
    except ValueError:
        return None
    if url.scheme not in ("https", "http") or url.hostname != "github.com":
        return None

    parts = url.path.strip("/").split("/")
    if len(parts) < 2:
        return None
    owner = parts[0]
    repo = parts[1]
    if repo.lower().endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        return None
    return owner, repo
