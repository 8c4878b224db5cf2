"""wraith CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from wraith.cli.ingest import ingest_cmd
from wraith.cli.query import query_cmd
from wraith.config import ensure_global_config


def _installed_version() -> str:
    try:
        return importlib.metadata.version("wraith")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wraith {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="wraith",
    help=(
        "wraith — question answering over your own documents.\n\n"
        "  wraith ingest PATH  Add PDF / text documents to the knowledge base.\n"
        "  wraith query        Ask questions answered from those documents."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Structured log level on stderr (DEBUG, INFO, WARNING, ERROR).",
        ),
    ] = None,
) -> None:
    """wraith — question answering over your own documents."""
    ctx.obj = {"log_level": log_level}


app.command("ingest")(ingest_cmd)
app.command("query")(query_cmd)


@app.command("init")
def init_cmd() -> None:
    """Write ~/.wraith/config.yaml with model defaults (kept if present)."""
    path = ensure_global_config()
    typer.echo(f"Global config: {path}")


@app.command("version")
def version_cmd() -> None:
    """Show the installed wraith version."""
    typer.echo(f"wraith {_installed_version()}")


if __name__ == "__main__":
    app()
