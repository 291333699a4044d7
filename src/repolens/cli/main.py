"""repolens CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from repolens.cli.ask import ask_cmd
from repolens.cli.history import history_cmd
from repolens.cli.ingest import ingest_cmd
from repolens.cli.remove import remove_cmd
from repolens.cli.status import status_cmd
from repolens.log import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("repolens")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"repolens {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="repolens",
    help=(
        "repolens: ask questions about a repository.\n\n"
        "  repolens ingest   Embed a repository checkout into a tenant namespace.\n"
        "  repolens ask      Answer a question from retrieved code chunks."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log per-batch progress."),
    ] = False,
) -> None:
    """repolens: ask questions about a repository."""
    configure_logging(verbose)


app.command("ingest")(ingest_cmd)
app.command("ask")(ask_cmd)
app.command("history")(history_cmd)
app.command("remove")(remove_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed repolens version."""
    typer.echo(f"repolens {_installed_version()}")


if __name__ == "__main__":
    app()
