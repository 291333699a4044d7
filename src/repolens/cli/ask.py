"""repolens ask: answer a question from an ingested namespace."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from repolens.cli.errors import render_error
from repolens.cli.runtime import open_service
from repolens.config import ConfigError
from repolens.errors import RepoLensError

console = Console()


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question about the repository.")],
    tenant: Annotated[
        str,
        typer.Option("--tenant", "-t", envvar="REPOLENS_TENANT", help="Tenant id."),
    ],
    namespace: Annotated[
        str,
        typer.Option("--namespace", "-n", help="Namespace, e.g. u1:owner/repo."),
    ],
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", min=1, help="Number of chunks to retrieve."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Vector store database (default: .repolens.db)."),
    ] = None,
) -> None:
    """Retrieve relevant chunks and print a grounded answer with sources."""
    try:
        service = open_service(db, top_k=top_k)
        result = service.query(tenant, namespace, question)
    except (RepoLensError, ConfigError) as exc:
        console.print(render_error(exc, tenant))
        raise typer.Exit(1)

    console.print(Markdown(result.answer))

    if not result.sources:
        console.print("\n[yellow]No matching chunks found in this namespace.[/]")
        return

    table = Table(title="Retrieved sources", show_lines=False)
    table.add_column("Path")
    table.add_column("Chunk", justify="right")
    table.add_column("Score", justify="right")
    for src in result.sources:
        table.add_row(escape(src.path), str(src.idx), f"{src.score:.3f}")
    console.print(table)
