"""repolens remove: delete one file's vectors from a namespace.

Used after a file is deleted or renamed in the repository, so its old
vectors stop showing up in retrieval.

Usage:
  repolens remove --tenant u1 --namespace u1:owner/repo --path src/old.js
  repolens remove --tenant u1 --namespace u1:owner/repo --path src/old.js --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from repolens.cli.errors import render_error
from repolens.cli.runtime import open_service
from repolens.config import ConfigError
from repolens.errors import RepoLensError

console = Console()


def remove_cmd(
    tenant: Annotated[
        str,
        typer.Option("--tenant", "-t", envvar="REPOLENS_TENANT", help="Tenant id."),
    ],
    namespace: Annotated[
        str,
        typer.Option("--namespace", "-n", help="Namespace, e.g. u1:owner/repo."),
    ],
    path: Annotated[
        str,
        typer.Option("--path", "-p", help="Repository-relative file path to remove."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Vector store database (default: .repolens.db)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove all vectors of a file from the knowledge base."""
    console.print(f"\nRemove [bold]{escape(path)}[/] from [bold]{escape(namespace)}[/]")
    if not yes:
        if not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    try:
        removed = open_service(db).remove_path(tenant, namespace, path)
    except (RepoLensError, ConfigError) as exc:
        console.print(render_error(exc, tenant))
        raise typer.Exit(1)

    if removed == 0:
        console.print(
            f"[yellow]Not found:[/] no vectors for '{escape(path)}' in {escape(namespace)}."
        )
        return
    console.print(f"[green]✓[/] Removed {removed} vectors for {escape(path)}")
