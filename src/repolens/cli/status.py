"""repolens status: a tenant's namespaces and their vector counts."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from repolens.cli.errors import render_error
from repolens.cli.runtime import open_service
from repolens.config import ConfigError
from repolens.errors import RepoLensError

console = Console()


def status_cmd(
    tenant: Annotated[
        str,
        typer.Option("--tenant", "-t", envvar="REPOLENS_TENANT", help="Tenant id."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Vector store database (default: .repolens.db)."),
    ] = None,
) -> None:
    """List the tenant's ingested namespaces."""
    try:
        service = open_service(db)
        namespaces = service.list_namespaces(tenant)
    except (RepoLensError, ConfigError) as exc:
        console.print(render_error(exc, tenant))
        raise typer.Exit(1)

    if not namespaces:
        console.print(f"[dim]No namespaces for tenant '{escape(tenant)}'. Run: repolens ingest[/]")
        return

    table = Table(title=f"Namespaces of {escape(tenant)}")
    table.add_column("Namespace")
    table.add_column("Vectors", justify="right")
    for ns, count in namespaces.items():
        table.add_row(escape(ns), str(count))
    console.print(table)
    console.print(f"[dim]Database: {escape(str(service.config.vector_store.path))}[/]")
