"""repolens history: recent questions and answers for a namespace."""

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

_ANSWER_PREVIEW = 120


def history_cmd(
    tenant: Annotated[
        str,
        typer.Option("--tenant", "-t", envvar="REPOLENS_TENANT", help="Tenant id."),
    ],
    namespace: Annotated[
        str,
        typer.Option("--namespace", "-n", help="Namespace, e.g. u1:owner/repo."),
    ],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", min=1, help="Maximum entries to show."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Vector store database (default: .repolens.db)."),
    ] = None,
) -> None:
    """Show the interaction log for a namespace, newest first."""
    try:
        records = open_service(db).history(tenant, namespace, limit)
    except (RepoLensError, ConfigError) as exc:
        console.print(render_error(exc, tenant))
        raise typer.Exit(1)

    if not records:
        console.print(f"[dim]No history for {escape(namespace)}.[/]")
        return

    table = Table(title=f"History of {escape(namespace)}")
    table.add_column("When", style="dim")
    table.add_column("Question")
    table.add_column("Answer")
    for rec in records:
        answer = rec.answer.replace("\n", " ")
        if len(answer) > _ANSWER_PREVIEW:
            answer = answer[:_ANSWER_PREVIEW] + "…"
        table.add_row(escape(rec.timestamp or ""), escape(rec.question), escape(answer))
    console.print(table)
