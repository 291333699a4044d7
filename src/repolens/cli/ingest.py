"""repolens ingest: embed a materialized repository into a tenant namespace.

  repolens ingest ./checkout --tenant u1 --repo owner/repo
  repolens ingest ./checkout --tenant u1 --repo-url https://github.com/owner/repo
  repolens ingest ./checkout --tenant u1 --repo owner/repo --resume-from 640
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from repolens.cli.errors import render_error
from repolens.cli.runtime import open_service
from repolens.config import ConfigError
from repolens.errors import RepoLensError
from repolens.namespace import parse_github_repo_url

console = Console()


def ingest_cmd(
    workspace: Annotated[
        Path,
        typer.Argument(help="Repository checkout to ingest."),
    ],
    tenant: Annotated[
        str,
        typer.Option("--tenant", "-t", envvar="REPOLENS_TENANT", help="Tenant id."),
    ],
    repo: Annotated[
        str | None,
        typer.Option("--repo", "-r", help="Repository slug, e.g. owner/repo."),
    ] = None,
    repo_url: Annotated[
        str | None,
        typer.Option("--repo-url", help="GitHub URL to derive the slug from."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Vector store database (default: .repolens.db)."),
    ] = None,
    resume_from: Annotated[
        int,
        typer.Option("--resume-from", min=0, help="Global chunk offset to resume at."),
    ] = 0,
    prune: Annotated[
        bool,
        typer.Option("--prune", help="Delete vectors not rewritten by this run."),
    ] = False,
) -> None:
    """Discover, chunk, embed and store a repository checkout."""
    slug = repo
    if slug is None and repo_url:
        parsed = parse_github_repo_url(repo_url)
        if parsed is None:
            console.print(f"[red]Error:[/] Not a GitHub repository URL: '{escape(repo_url)}'")
            raise typer.Exit(1)
        slug = "/".join(parsed)
    if not slug:
        console.print("[red]Error:[/] No repository given. Use --repo OWNER/REPO or --repo-url URL.")
        raise typer.Exit(1)

    try:
        service = open_service(db, prune=prune)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task("Embedding…", total=None)

            def _on_batch(done: int, total: int) -> None:
                prog.update(task, completed=done, total=total)

            stats = service.ingest_from_workspace(
                tenant, slug, workspace, start_offset=resume_from, on_batch=_on_batch
            )
    except (RepoLensError, ConfigError) as exc:
        console.print(render_error(exc, tenant))
        raise typer.Exit(1)

    console.print(f"[bold]→ {escape(stats.namespace)}[/]")
    console.print(
        f"  [green]✓[/] {stats.file_count} files · {stats.chunk_count} chunks · "
        f"{stats.upserted} vectors upserted"
    )
    if stats.skipped_files:
        console.print(f"  [yellow]↷ {len(stats.skipped_files)} unreadable files skipped[/]")
    if stats.pruned:
        console.print(f"  [dim]{stats.pruned} stale vectors pruned[/]")
    if stats.file_count == 0:
        console.print("  [yellow]No eligible files found.[/]")
