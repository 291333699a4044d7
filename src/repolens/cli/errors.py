"""Rich error messages: actionable feedback for every failure kind.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from repolens.cli.errors import render_error
    console.print(render_error(exc))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from repolens.config import ConfigError
from repolens.errors import Forbidden, NotConfigured, RepoLensError, Unavailable


def err_forbidden(namespace: str, tenant: str) -> str:
    """Namespace belongs to another tenant."""
    return (
        f"[red]Error:[/] Namespace '{namespace}' does not belong to tenant '{tenant}'.\n"
        f"  Use a namespace of the form '{tenant}:<owner>/<repo>'.\n"
        "  Run:  repolens status --tenant <tenant>  to list your namespaces."
    )


def err_not_configured(detail: str) -> str:
    """Missing credential or endpoint."""
    return (
        f"[red]Error:[/] Not configured: {detail}\n"
        "  Set the missing environment variable or repolens.yaml entry and retry."
    )


def err_unavailable(detail: str) -> str:
    """Transient backend failure, safe to retry."""
    return (
        f"[red]Error:[/] Backend unavailable: {detail}\n"
        "  This is usually transient. Retry in a moment."
    )


def err_partial_ingest(upserted: int, next_offset: int) -> str:
    """Ingestion aborted after some batches were written."""
    return (
        f"[yellow]⚠[/] Ingestion incomplete: {upserted} vectors were stored before the failure.\n"
        f"  Resume with:  repolens ingest ... --resume-from {next_offset}"
    )


def err_invalid(detail: str) -> str:
    return f"[red]Error:[/] {detail}"


def err_config(detail: str) -> str:
    return (
        f"[red]Error:[/] Invalid configuration.\n  {detail}\n"
        "  Fix repolens.yaml (or ~/.repolens/config.yaml) and retry."
    )


def render_error(exc: Exception, tenant: str = "") -> str:
    """Return the user-facing message for *exc*. Error text is markup-escaped.

    Any pipeline error carrying ``next_offset`` also gets the resume hint.
    """
    message = _base_message(exc, tenant)
    if isinstance(exc, RepoLensError) and "next_offset" in exc.context:
        message += "\n" + err_partial_ingest(
            exc.context.get("upserted", 0), exc.context["next_offset"]
        )
    return message


def _base_message(exc: Exception, tenant: str) -> str:
    if isinstance(exc, Forbidden):
        return err_forbidden(escape(str(exc.context.get("namespace", ""))), escape(tenant))
    if isinstance(exc, NotConfigured):
        return err_not_configured(escape(exc.message))
    if isinstance(exc, Unavailable):
        return err_unavailable(escape(str(exc)))
    if isinstance(exc, ConfigError):
        return err_config(escape(str(exc)))
    return err_invalid(escape(str(exc)))
